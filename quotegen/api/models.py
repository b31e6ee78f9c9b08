"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Response models read straight from the domain dataclasses (from_attributes).
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from quotegen.domain.quote import LineItem, QuoteStatus
from quotegen.domain.time import parse_utc_datetime
from quotegen.domain.wizard import Address, CustomerInfo, QuoteFormData


# ============================================================================
# Shared Models
# ============================================================================

class LineItemModel(BaseModel):
    """Single line item (request and response)."""
    model_config = ConfigDict(from_attributes=True)

    name: str = ""
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    discount_percent: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    product_id: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None

    def to_domain(self) -> LineItem:
        return LineItem(**self.model_dump())


# ============================================================================
# Quote Models
# ============================================================================

class QuoteModel(BaseModel):
    """A quote as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    quote_number: str
    status: QuoteStatus
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    title: str
    line_items: List[LineItemModel]
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    shipping_total: Decimal
    total: Decimal
    currency: str
    expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None


class StatusChangeRecordModel(BaseModel):
    """One status history entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    quote_id: str
    from_status: QuoteStatus
    to_status: QuoteStatus
    changed_by: str
    changed_by_name: str
    changed_at: datetime
    comment: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class QuoteWithHistoryModel(QuoteModel):
    status_history: List[StatusChangeRecordModel] = Field(default_factory=list)


class QuoteStatusResponse(BaseModel):
    """Response for GET /quotes/{id}/status."""
    success: bool = True
    data: QuoteWithHistoryModel


class StatusUpdateRequest(BaseModel):
    """
    Body of PATCH /quotes/{id}/status.

    `status` is checked by the route (MISSING_STATUS / INVALID_STATUS), so any
    JSON value is accepted here.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "status": "rejected",
                "comment": "Price too high",
                "metadata": {"source": "customer_call"},
                "notifyCustomer": True,
            }
        },
    )

    status: Optional[Any] = None
    comment: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    notify_customer: bool = Field(default=True, alias="notifyCustomer")


class StatusTransitionData(BaseModel):
    quote: QuoteWithHistoryModel
    transition: StatusChangeRecordModel


class StatusUpdateResponse(BaseModel):
    """Response for PATCH /quotes/{id}/status."""
    success: bool = True
    data: StatusTransitionData


# ============================================================================
# Quote Creation Models
# ============================================================================

class AddressModel(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""


class CustomerModel(BaseModel):
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    company: Optional[str] = None
    customer_id: Optional[str] = None
    address: AddressModel = Field(default_factory=AddressModel)


class CreateQuoteRequest(BaseModel):
    """Completed wizard form data."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customer": {"name": "Acme Corp", "email": "buyer@acme.example"},
                "line_items": [
                    {"name": "Widget", "quantity": "2", "unit_price": "100.00", "discount_percent": "10"}
                ],
                "title": "Spring order",
                "discount_total": "0",
                "tax_rate": "8",
            }
        }
    )

    customer: CustomerModel = Field(default_factory=CustomerModel)
    line_items: List[LineItemModel] = Field(default_factory=list)
    title: str = "New Quote"
    description: str = ""
    notes: str = ""
    terms: str = ""
    valid_until: Optional[datetime] = None
    discount_total: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    shipping_total: Decimal = Decimal("0")

    def to_form_data(self) -> QuoteFormData:
        customer = self.customer
        return QuoteFormData(
            customer=CustomerInfo(
                name=customer.name,
                email=customer.email,
                phone=customer.phone,
                company=customer.company,
                customer_id=customer.customer_id,
                address=Address(**customer.address.model_dump()),
            ),
            line_items=[item.to_domain() for item in self.line_items],
            title=self.title,
            description=self.description,
            notes=self.notes,
            terms=self.terms,
            valid_until=parse_utc_datetime(self.valid_until) if self.valid_until else None,
            discount_total=self.discount_total,
            tax_rate=self.tax_rate,
            shipping_total=self.shipping_total,
        )


class QuoteResponse(BaseModel):
    success: bool = True
    data: QuoteModel


class QuoteListResponse(BaseModel):
    """Response for GET /quotes."""
    success: bool = True
    data: List[QuoteModel]


class CalculateRequest(BaseModel):
    line_items: List[LineItemModel] = Field(default_factory=list)
    discount_total: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")


class CalculationsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subtotal: Decimal
    discount_total: Decimal
    taxable_amount: Decimal
    tax_total: Decimal
    total: Decimal


class CalculateResponse(BaseModel):
    success: bool = True
    data: CalculationsModel


class ExpirationData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    expired: int
    expired_quote_ids: List[str]
    errors: List[str]


class ExpirationResponse(BaseModel):
    success: bool = True
    data: ExpirationData
