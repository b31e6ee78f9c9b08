"""
FastAPI dependencies.

Routes receive their collaborators through these functions so tests can swap
them with `app.dependency_overrides`.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header

from quotegen.config import Settings, get_settings
from quotegen.repositories.client import Client, get_supabase
from quotegen.services.notification_service import (
    EmailSender,
    LoggingEmailSender,
    WebhookEmailSender,
)
from quotegen.services.status_service import SYSTEM_ACTOR_ID, SYSTEM_ACTOR_NAME, Actor


def get_db() -> Client:
    return get_supabase()


def get_email_sender(settings: Settings = Depends(get_settings)) -> EmailSender:
    if settings.email_webhook_url:
        return WebhookEmailSender(settings.email_webhook_url, from_email=settings.from_email)
    return LoggingEmailSender()


def get_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Actor:
    """Acting user from request headers (auth is handled upstream)."""
    return Actor(
        user_id=x_user_id or SYSTEM_ACTOR_ID,
        user_name=x_user_name or SYSTEM_ACTOR_NAME,
    )


__all__ = ["get_actor", "get_db", "get_email_sender"]
