"""
Quotes API Endpoints.

Endpoints for listing and creating quotes, calculating totals, reading and changing quote
status, and running the expiration sweep.
"""

import logging
from typing import Any, Iterable, Optional

from fastapi import APIRouter, Depends, Query, status

from quotegen.api.dependencies import get_actor, get_db, get_email_sender
from quotegen.api.errors import ApiError
from quotegen.api.models import (
    CalculateRequest,
    CalculateResponse,
    CalculationsModel,
    CreateQuoteRequest,
    ExpirationData,
    ExpirationResponse,
    QuoteListResponse,
    QuoteModel,
    QuoteResponse,
    QuoteStatusResponse,
    QuoteWithHistoryModel,
    StatusChangeRecordModel,
    StatusTransitionData,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from quotegen.config import Settings, get_settings
from quotegen.domain.quote import Quote, QuoteStatus
from quotegen.domain.quote_calculator import calculate_quote_totals
from quotegen.domain.status_workflow import StatusChangeRecord
from quotegen.repositories.client import Client, RepositoryError
from quotegen.repositories.quote_repository import list_quotes
from quotegen.services.expiration_service import expire_overdue_quotes
from quotegen.services.notification_service import EmailSender
from quotegen.services.quote_service import QuoteValidationError, create_quote
from quotegen.services.status_service import (
    Actor,
    StatusChangeError,
    change_quote_status,
    get_quote_with_history,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# StatusChangeError.code -> HTTP status
_STATUS_CODES = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_400_BAD_REQUEST,
    "FETCH_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "HISTORY_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "UPDATE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _api_error_from(error: StatusChangeError) -> ApiError:
    return ApiError(
        _STATUS_CODES.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        error.code,
        error.message,
    )


def _require_id(quote_id: str) -> str:
    quote_id = quote_id.strip()
    if not quote_id:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "MISSING_ID", "Quote ID is required")
    return quote_id


def _parse_status(value: Any) -> QuoteStatus:
    try:
        return QuoteStatus(value)
    except (TypeError, ValueError):
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_STATUS",
            f"Invalid status: {value}",
        )


def _quote_with_history(quote: Quote, history: Iterable[StatusChangeRecord]) -> QuoteWithHistoryModel:
    data = QuoteModel.model_validate(quote).model_dump()
    data["status_history"] = [StatusChangeRecordModel.model_validate(record) for record in history]
    return QuoteWithHistoryModel(**data)


def _internal_error(route: str) -> ApiError:
    logger.exception(f"Unexpected error in {route}")
    return ApiError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "Internal server error",
    )


@router.get(
    "/quotes",
    response_model=QuoteListResponse,
    summary="List Quotes",
    description="List quotes, newest first, optionally filtered by status or customer.",
)
def get_quotes(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    customer_id: Optional[str] = Query(default=None),
    db: Client = Depends(get_db),
):
    """
    List quotes for the dashboard.

    **Query parameters:**
    - `status`: only quotes currently in this status (e.g. `sent`)
    - `customer_id`: only quotes for this customer

    An unknown `status` returns `INVALID_STATUS`.
    """
    try:
        requested_status = _parse_status(status_filter) if status_filter else None
        quotes = list_quotes(db, status=requested_status, customer_id=customer_id)

        logger.info(f"Listed {len(quotes)} quotes", extra={"status": status_filter})
        return QuoteListResponse(data=[QuoteModel.model_validate(quote) for quote in quotes])

    except RepositoryError as e:
        logger.error(f"Error listing quotes: {e}")
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "FETCH_ERROR",
            "Failed to fetch quotes",
        )
    except ApiError:
        raise
    except Exception:
        raise _internal_error("GET /quotes")


@router.post(
    "/quotes",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Quote",
    description="Create a draft quote from completed wizard form data.",
)
def create_new_quote(
    request: CreateQuoteRequest,
    db: Client = Depends(get_db),
    actor: Actor = Depends(get_actor),
    settings: Settings = Depends(get_settings),
):
    """
    Create a draft quote.

    **How it works:**
    1. Validates customer info and line items
    2. Calculates subtotal, discount, tax and total
    3. Stores the quote in `draft` with a generated quote number

    Validation failures return `VALIDATION_ERROR` with a `details` mapping of
    field path to messages, e.g. `{"line_items[0].quantity": ["Quantity must be greater than 0"]}`.
    """
    try:
        quote = create_quote(
            db,
            request.to_form_data(),
            actor=actor,
            currency=settings.default_currency,
            validity_days=settings.quote_validity_days,
        )
        return QuoteResponse(data=QuoteModel.model_validate(quote))

    except QuoteValidationError as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            str(e),
            details=e.errors,
        )
    except RepositoryError as e:
        logger.error(f"Error creating quote: {e}")
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "CREATE_ERROR",
            "Failed to create quote",
        )
    except ApiError:
        raise
    except Exception:
        raise _internal_error("POST /quotes")


@router.post(
    "/quotes/calculate",
    response_model=CalculateResponse,
    summary="Calculate Quote Totals",
    description="Calculate subtotal, discount, tax and total for a set of line items.",
)
def calculate_totals(request: CalculateRequest):
    """
    Calculate totals without storing anything.

    **Example request:**
    ```json
    {
      "line_items": [{"name": "Widget", "quantity": 2, "unit_price": 100, "discount_percent": 10}],
      "discount_total": 0,
      "tax_rate": 8
    }
    ```
    returns subtotal `180.00`, tax_total `14.40`, total `194.40`.
    """
    calculations = calculate_quote_totals(
        [item.to_domain() for item in request.line_items],
        request.discount_total,
        request.tax_rate,
    )
    return CalculateResponse(data=CalculationsModel.model_validate(calculations))


@router.post(
    "/quotes/expire",
    response_model=ExpirationResponse,
    summary="Expire Overdue Quotes",
    description="Move every sent/viewed quote past its expiry date to `expired`.",
)
def expire_quotes(db: Client = Depends(get_db)):
    try:
        result = expire_overdue_quotes(db)
        return ExpirationResponse(data=ExpirationData.model_validate(result))
    except Exception:
        raise _internal_error("POST /quotes/expire")


@router.get(
    "/quotes/{quote_id}/status",
    response_model=QuoteStatusResponse,
    summary="Get Quote Status",
    description="Fetch a quote together with its status history (newest first).",
)
def get_quote_status(quote_id: str, db: Client = Depends(get_db)):
    try:
        quote_id = _require_id(quote_id)
        quote, history = get_quote_with_history(db, quote_id)
        return QuoteStatusResponse(data=_quote_with_history(quote, history))

    except StatusChangeError as e:
        raise _api_error_from(e)
    except ApiError:
        raise
    except Exception:
        raise _internal_error("GET /quotes/{id}/status")


@router.patch(
    "/quotes/{quote_id}/status",
    response_model=StatusUpdateResponse,
    summary="Update Quote Status",
    description="Move a quote to a new status, recording history and notifying the customer.",
)
def update_quote_status(
    quote_id: str,
    body: Optional[StatusUpdateRequest] = None,
    db: Client = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender),
    actor: Actor = Depends(get_actor),
    settings: Settings = Depends(get_settings),
):
    """
    Change a quote's status.

    **Allowed transitions:**
    - draft -> pending, sent
    - pending -> sent, rejected
    - sent -> viewed, accepted, rejected, expired
    - viewed -> accepted, rejected, expired
    - accepted -> converted

    The acting user is read from the `x-user-id` / `x-user-name` headers.
    A `comment` on a rejection is stored as the quote's `rejection_reason`.
    Customer email and activity logging never fail the request.

    **Example request:**
    ```json
    {"status": "rejected", "comment": "Price too high", "notifyCustomer": true}
    ```
    """
    try:
        quote_id = _require_id(quote_id)

        if body is None:
            raise ApiError(
                status.HTTP_400_BAD_REQUEST,
                "INVALID_BODY",
                "Invalid JSON in request body",
            )

        if body.status is None or body.status == "":
            raise ApiError(
                status.HTTP_400_BAD_REQUEST,
                "MISSING_STATUS",
                "New status is required",
            )

        new_status = _parse_status(body.status)

        outcome = change_quote_status(
            db,
            quote_id,
            new_status,
            actor=actor,
            comment=body.comment,
            metadata=body.metadata,
            notify_customer=body.notify_customer,
            email_sender=email_sender,
            company_name=settings.company_name,
        )

        return StatusUpdateResponse(
            data=StatusTransitionData(
                quote=_quote_with_history(outcome.quote, [outcome.transition]),
                transition=StatusChangeRecordModel.model_validate(outcome.transition),
            )
        )

    except StatusChangeError as e:
        raise _api_error_from(e)
    except ApiError:
        raise
    except Exception:
        raise _internal_error("PATCH /quotes/{id}/status")
