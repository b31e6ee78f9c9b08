"""
Customer notification emails for quote status changes.

Only `sent`, `accepted` and `rejected` notify the customer. This module renders
the email and hands it to an EmailSender; actual delivery belongs to whatever
sits behind the sender (a logging stub in development, an HTTP relay otherwise).
"""

from __future__ import annotations

import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

import httpx

from quotegen.domain.quote import Quote, QuoteStatus

logger = logging.getLogger(__name__)

NOTIFY_STATUSES: FrozenSet[QuoteStatus] = frozenset(
    {QuoteStatus.SENT, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED}
)


@dataclass(frozen=True, slots=True)
class StatusEmail:
    to: str
    subject: str
    html: str


@dataclass(frozen=True, slots=True)
class _Template:
    subject: str
    title: str
    message: str
    cta: str


_TEMPLATES: Dict[QuoteStatus, _Template] = {
    QuoteStatus.SENT: _Template(
        subject="Quote {number} - Ready for Review",
        title="Your Quote is Ready",
        message='Your quote "{title}" ({number}) has been prepared and is ready for your review.',
        cta="View Quote",
    ),
    QuoteStatus.ACCEPTED: _Template(
        subject="Quote {number} - Accepted!",
        title="Quote Accepted!",
        message=(
            'Great news! Your quote "{title}" ({number}) has been accepted. '
            "We'll be in touch shortly with next steps."
        ),
        cta="View Details",
    ),
    QuoteStatus.REJECTED: _Template(
        subject="Quote {number} - Update",
        title="Quote Update",
        message=(
            "Thank you for your interest. Unfortunately, we are unable to fulfill your "
            'quote request "{title}" ({number}) at this time.'
        ),
        cta="Contact Us",
    ),
}

_HTML_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">
      <p>Hello,</p>
      <p>{message}</p>
      <a href="#" class="button">{cta}</a>
    </div>
    <div class="footer"><p>This email was sent by {company}</p></div>
  </div>
</body>
</html>
"""


def build_status_email(
    quote: Quote,
    status: QuoteStatus,
    company_name: str = "QuoteGen",
) -> Optional[StatusEmail]:
    """
    Render the customer email for `status`.

    Returns None when the status does not notify or the quote has no customer email.
    """

    template = _TEMPLATES.get(status)
    if template is None or not quote.customer_email:
        return None

    number = quote.quote_number or quote.id
    title = quote.title or "Your Quote"
    message = template.message.format(title=html.escape(title), number=html.escape(number))

    return StatusEmail(
        to=quote.customer_email,
        subject=template.subject.format(number=number),
        html=_HTML_LAYOUT.format(
            title=template.title,
            message=message,
            cta=template.cta,
            company=html.escape(company_name),
        ),
    )


class EmailSender(ABC):
    """Delivery seam for customer emails."""

    @abstractmethod
    def send(self, email: StatusEmail) -> None:
        """Deliver `email`; raise on failure."""


class LoggingEmailSender(EmailSender):
    """
    Email sender that only logs.

    Useful for development and testing, or when no relay is configured.
    """

    def send(self, email: StatusEmail) -> None:
        logger.info(
            f"[EMAIL] To: {email.to}, Subject: {email.subject}",
            extra={"email_to": email.to, "email_subject": email.subject},
        )


class WebhookEmailSender(EmailSender):
    """
    Email sender that POSTs the rendered email as JSON to a relay URL.
    """

    def __init__(self, webhook_url: str, from_email: str, timeout: float = 10.0):
        self.webhook_url = webhook_url
        self.from_email = from_email
        self.timeout = timeout

    def send(self, email: StatusEmail) -> None:
        payload = {
            "from": self.from_email,
            "to": email.to,
            "subject": email.subject,
            "html": email.html,
        }
        response = httpx.post(self.webhook_url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        logger.info(f"Email relayed to {email.to} (HTTP {response.status_code})")


def send_status_notification(
    sender: EmailSender,
    quote: Quote,
    status: QuoteStatus,
    company_name: str = "QuoteGen",
) -> bool:
    """
    Notify the customer about `status` if it warrants a message.

    Returns:
        True if an email was handed to the sender, False if nothing needed sending
    """

    if status not in NOTIFY_STATUSES:
        return False

    email = build_status_email(quote, status, company_name=company_name)
    if email is None:
        logger.info(f"No customer email available for quote {quote.quote_number}")
        return False

    sender.send(email)
    return True


__all__ = [
    "NOTIFY_STATUSES",
    "EmailSender",
    "LoggingEmailSender",
    "StatusEmail",
    "WebhookEmailSender",
    "build_status_email",
    "send_status_notification",
]
