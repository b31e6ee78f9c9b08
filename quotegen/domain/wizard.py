"""
Domain: Quote creation wizard.

A five-step linear flow owned by a single editing session:

    customer-info -> product-selection -> line-items -> terms-notes -> review-send

Navigation rules:
- next_step: only if the current step validates; marks it completed and advances.
- previous_step: always allowed except from the first step; never validates.
- go_to_step: allowed to any step at or before the current one, or to a step
  that was already completed.
- submit_quote: re-validates the current step, then hands the form data to the
  completion callback. A failing callback leaves step state untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, List, Optional

from .quote import LineItem
from .quote_calculator import QuoteCalculations, calculate_quote_totals, to_decimal
from .validation import (
    ValidationErrors,
    merge_errors,
    validate_customer_info,
    validate_line_items,
)

logger = logging.getLogger(__name__)


class WizardStep(str, Enum):
    CUSTOMER_INFO = "customer-info"
    PRODUCT_SELECTION = "product-selection"
    LINE_ITEMS = "line-items"
    TERMS_NOTES = "terms-notes"
    REVIEW_SEND = "review-send"


WIZARD_STEPS: tuple[WizardStep, ...] = tuple(WizardStep)


@dataclass(frozen=True, slots=True)
class Address:
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""


@dataclass(frozen=True, slots=True)
class CustomerInfo:
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    company: Optional[str] = None
    customer_id: Optional[str] = None
    address: Address = field(default_factory=Address)


@dataclass(slots=True)
class QuoteFormData:
    """Everything collected by the wizard. Mutable; owned by one QuoteWizard."""

    customer: CustomerInfo = field(default_factory=CustomerInfo)
    line_items: List[LineItem] = field(default_factory=list)
    title: str = "New Quote"
    description: str = ""
    notes: str = ""
    terms: str = ""
    valid_until: Optional[datetime] = None
    discount_total: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    shipping_total: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        self.discount_total = to_decimal(self.discount_total)
        self.tax_rate = to_decimal(self.tax_rate)
        self.shipping_total = to_decimal(self.shipping_total)


class QuoteWizard:
    """
    State machine for one quote-composition session.

    The completion callback receives the accumulated QuoteFormData; whatever it
    returns is kept on `result` (e.g. the persisted Quote).
    """

    def __init__(
        self,
        on_complete: Optional[Callable[[QuoteFormData], Any]] = None,
        initial_data: Optional[QuoteFormData] = None,
    ) -> None:
        self._on_complete = on_complete
        self._initial_data = initial_data
        self.reset()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def step_index(self) -> int:
        return WIZARD_STEPS.index(self.current_step)

    @property
    def calculations(self) -> QuoteCalculations:
        return calculate_quote_totals(
            self.form_data.line_items,
            self.form_data.discount_total,
            self.form_data.tax_rate,
        )

    @property
    def is_step_valid(self) -> bool:
        return not self._errors_for_step(self.current_step)

    @property
    def can_proceed(self) -> bool:
        return self.is_step_valid and not self.is_loading

    @property
    def can_go_back(self) -> bool:
        return self.current_step != WIZARD_STEPS[0] and not self.is_loading

    @property
    def progress(self) -> float:
        """Percentage of the flow reached, counting the current step."""
        return (self.step_index + 1) / len(WIZARD_STEPS) * 100

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _errors_for_step(self, step: WizardStep) -> ValidationErrors:
        if step is WizardStep.CUSTOMER_INFO:
            return validate_customer_info(self.form_data.customer)
        if step is WizardStep.LINE_ITEMS:
            return validate_line_items(self.form_data.line_items)
        if step is WizardStep.REVIEW_SEND:
            return merge_errors(
                validate_customer_info(self.form_data.customer),
                validate_line_items(self.form_data.line_items),
            )
        # product-selection and terms-notes are optional
        return {}

    def validate_current_step(self) -> bool:
        self.validation_errors = self._errors_for_step(self.current_step)
        return not self.validation_errors

    def go_to_step(self, step: WizardStep | str) -> bool:
        """Jump to `step` if it is behind us or already completed. Returns True if moved."""

        target = WizardStep(step)
        if WIZARD_STEPS.index(target) <= self.step_index or target in self.completed_steps:
            self.current_step = target
            self.validation_errors = {}
            return True
        return False

    def next_step(self) -> bool:
        """Validate and advance. Returns False (staying put) if validation fails."""

        if not self.validate_current_step():
            return False

        if self.current_step not in self.completed_steps:
            self.completed_steps.append(self.current_step)

        if self.step_index < len(WIZARD_STEPS) - 1:
            self.current_step = WIZARD_STEPS[self.step_index + 1]
            self.validation_errors = {}
        return True

    def previous_step(self) -> bool:
        if self.step_index == 0:
            return False
        self.current_step = WIZARD_STEPS[self.step_index - 1]
        self.validation_errors = {}
        return True

    # ------------------------------------------------------------------
    # Form editing
    # ------------------------------------------------------------------

    def update_form_data(self, **changes: Any) -> None:
        self.form_data = replace(self.form_data, **changes)
        self.validation_errors = {}

    def update_customer(self, **changes: Any) -> None:
        self.form_data.customer = replace(self.form_data.customer, **changes)
        for key in ("name", "email", "phone"):
            self.validation_errors.pop(key, None)

    def add_line_item(self, item: Optional[LineItem] = None, **fields: Any) -> LineItem:
        if item is None:
            values: dict[str, Any] = {"name": "", "quantity": 1, "unit_price": 0}
            values.update(fields)
            item = LineItem(**values)
        self.form_data.line_items.append(item)
        self.validation_errors.pop("line_items", None)
        return item

    def update_line_item(self, index: int, **changes: Any) -> LineItem:
        updated = replace(self.form_data.line_items[index], **changes)
        self.form_data.line_items[index] = updated

        prefix = f"line_items[{index}]"
        for key in [k for k in self.validation_errors if k.startswith(prefix)]:
            del self.validation_errors[key]
        return updated

    def remove_line_item(self, index: int) -> None:
        del self.form_data.line_items[index]

    def clear_error(self) -> None:
        self.error = None

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_quote(self) -> bool:
        """
        Validate the current step and run the completion callback.

        Returns False if validation fails. Re-raises callback errors after
        recording them on `error`; step state is only updated on success.
        """

        if not self.validate_current_step():
            return False

        self.is_loading = True
        self.error = None
        try:
            if self._on_complete is not None:
                self.result = self._on_complete(self.form_data)
        except Exception as exc:
            self.error = str(exc) or "Failed to submit quote"
            logger.warning(f"Quote submission failed: {self.error}")
            raise
        finally:
            self.is_loading = False

        self.completed_steps = list(WIZARD_STEPS)
        self.is_submitted = True
        return True

    def reset(self) -> None:
        self.current_step: WizardStep = WIZARD_STEPS[0]
        self.completed_steps: List[WizardStep] = []
        self.is_loading = False
        self.is_submitted = False
        self.error: Optional[str] = None
        self.validation_errors: ValidationErrors = {}
        self.result: Any = None
        if self._initial_data is not None:
            self.form_data = replace(
                self._initial_data, line_items=list(self._initial_data.line_items)
            )
        else:
            self.form_data = QuoteFormData()


__all__ = [
    "WIZARD_STEPS",
    "Address",
    "CustomerInfo",
    "QuoteFormData",
    "QuoteWizard",
    "WizardStep",
]
