"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The presentation layer must highlight the exact field or line item that
failed validation.  Parsing message strings for that is fragile, so every
failure is:
  1. A TYPED exception class (catch by type, not message)
  2. Carrying a CODE attribute (machine-readable, API-safe)
  3. Carrying structured DATA (field name, line index, limits)

Example:
    try:
        pricer.price(quantity=0, unit_price=price)
    except InvalidQuantityError as e:
        form.highlight(e.field, e.line_index)
        api_response(code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProcurementError (base)
    |
    +-- DocumentValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidPriceError
    |   +-- InvalidRateError
    |   +-- DiscountExceedsTotalError
    |   +-- QuantityExceedsContractError
    |   +-- ProductNotInContractError
    |   +-- InvalidDateOrderingError
    |   +-- MissingRequiredFieldError
    |   +-- BindingValidationError (aggregate)
    |
    +-- LifecycleError
    |   +-- DocumentNotEditableError
    |   +-- InvalidTransitionError
    |
    +-- DebtError
    |   +-- OverpaymentError
    |   +-- DebtCancelledError
    |   +-- DebtLimitExceededError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                       | When Raised
------------|----------------------------|-------------------------------------
Validation  | INVALID_QUANTITY           | Line quantity <= 0 or not integral
            | INVALID_PRICE              | Unit price / explicit amount < 0
            | INVALID_RATE               | Discount / tax rate negative
            | DISCOUNT_EXCEEDS_TOTAL     | Discount larger than line total
            | QUANTITY_EXCEEDS_CONTRACT  | Order line above contracted quantity
            | PRODUCT_NOT_IN_CONTRACT    | Product absent from bound contract
            | INVALID_DATE_ORDERING      | Not start <= sign <= end
            | MISSING_REQUIRED_FIELD     | Title / number / items missing
            | BINDING_VALIDATION_FAILED  | One or more lines failed rebinding
------------|----------------------------|-------------------------------------
Lifecycle   | DOCUMENT_NOT_EDITABLE      | Mutation of a non-draft document
            | INVALID_TRANSITION         | Action not defined from this state
------------|----------------------------|-------------------------------------
Debt        | OVERPAYMENT                | Payment larger than remaining amount
            | DEBT_CANCELLED             | Payment against a cancelled debt
            | DEBT_LIMIT_EXCEEDED        | Recognition above supplier max_debt
------------|----------------------------|-------------------------------------
Config      | INVALID_CONFIGURATION      | Bad settings file / value

Transport errors raised by the remote document store are NOT part of this
hierarchy.  They pass through the core unchanged.
"""

from __future__ import annotations

from typing import Any


class ProcurementError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCUREMENT_ERROR"


# Validation exceptions


class DocumentValidationError(ProcurementError):
    """
    Base for locally detectable validation failures.

    ``field`` names the offending input field and ``line_index`` the
    offending line item (None for document-level fields).
    """

    code: str = "DOCUMENT_VALIDATION_ERROR"

    def __init__(self, message: str, field: str, line_index: int | None = None):
        self.field = field
        self.line_index = line_index
        super().__init__(message)

    def with_line_index(self, line_index: int) -> DocumentValidationError:
        """Attach the line position once the caller knows it."""
        self.line_index = line_index
        return self


class InvalidQuantityError(DocumentValidationError):
    """Line quantity must be a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: Any, line_index: int | None = None):
        self.quantity = quantity
        super().__init__(
            f"Quantity must be a positive integer, got {quantity!r}",
            field="quantity",
            line_index=line_index,
        )


class InvalidPriceError(DocumentValidationError):
    """Unit price or an explicit monetary amount is negative or not a number."""

    code: str = "INVALID_PRICE"

    def __init__(
        self,
        value: Any,
        field: str = "unit_price",
        line_index: int | None = None,
    ):
        self.value = value
        super().__init__(
            f"{field} must be a non-negative amount, got {value}",
            field=field,
            line_index=line_index,
        )


class InvalidRateError(DocumentValidationError):
    """A discount or tax rate is outside its valid range."""

    code: str = "INVALID_RATE"

    def __init__(self, value: Any, field: str = "rate", line_index: int | None = None):
        self.value = value
        super().__init__(
            f"Invalid {field}: {value!r}",
            field=field,
            line_index=line_index,
        )


class DiscountExceedsTotalError(DocumentValidationError):
    """Discount amount is larger than quantity * unit price."""

    code: str = "DISCOUNT_EXCEEDS_TOTAL"

    def __init__(self, discount_amount: str, total_price: str, line_index: int | None = None):
        self.discount_amount = discount_amount
        self.total_price = total_price
        super().__init__(
            f"Discount {discount_amount} exceeds line total {total_price}",
            field="discount_amount",
            line_index=line_index,
        )


class QuantityExceedsContractError(DocumentValidationError):
    """Order line quantity is above the contracted quantity for the product."""

    code: str = "QUANTITY_EXCEEDS_CONTRACT"

    def __init__(
        self,
        product_ref: str,
        requested: int,
        allowed: int,
        contract_id: str,
        line_index: int | None = None,
    ):
        self.product_ref = product_ref
        self.requested = requested
        self.allowed = allowed
        self.contract_id = contract_id
        super().__init__(
            f"Quantity {requested} for product {product_ref} exceeds "
            f"contract {contract_id} maximum of {allowed}",
            field="quantity",
            line_index=line_index,
        )


class ProductNotInContractError(DocumentValidationError):
    """Product is not one of the bound contract's line items."""

    code: str = "PRODUCT_NOT_IN_CONTRACT"

    def __init__(self, product_ref: str, contract_id: str, line_index: int | None = None):
        self.product_ref = product_ref
        self.contract_id = contract_id
        super().__init__(
            f"Product {product_ref} is not part of contract {contract_id}",
            field="product_ref",
            line_index=line_index,
        )


class InvalidDateOrderingError(DocumentValidationError):
    """Contract dates violate start_date <= sign_date <= end_date."""

    code: str = "INVALID_DATE_ORDERING"

    def __init__(self, field: str, start_date: Any, sign_date: Any, end_date: Any):
        self.start_date = start_date
        self.sign_date = sign_date
        self.end_date = end_date
        super().__init__(
            f"Dates must satisfy start <= sign <= end "
            f"(start={start_date}, sign={sign_date}, end={end_date})",
            field=field,
        )


class MissingRequiredFieldError(DocumentValidationError):
    """A field required for the requested operation is empty."""

    code: str = "MISSING_REQUIRED_FIELD"

    def __init__(self, field: str, document_type: str):
        self.document_type = document_type
        super().__init__(
            f"{document_type} is missing required field '{field}'",
            field=field,
        )


class BindingValidationError(DocumentValidationError):
    """One or more order lines failed validation against a contract."""

    code: str = "BINDING_VALIDATION_FAILED"

    def __init__(self, errors: list[DocumentValidationError]):
        self.errors = tuple(errors)
        super().__init__(
            f"{len(errors)} line item(s) failed contract validation",
            field="items",
        )


# Lifecycle exceptions


class LifecycleError(ProcurementError):
    """Base exception for document status transitions."""

    code: str = "LIFECYCLE_ERROR"


class DocumentNotEditableError(LifecycleError):
    """The document has left DRAFT and can no longer be modified."""

    code: str = "DOCUMENT_NOT_EDITABLE"

    def __init__(self, document_id: str, status: str, action: str):
        self.document_id = document_id
        self.status = status
        self.action = action
        super().__init__(
            f"Document {document_id} in status {status} cannot be modified ({action})"
        )


class InvalidTransitionError(LifecycleError):
    """No transition for this action from the document's current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, workflow: str, from_state: str, action: str):
        self.workflow = workflow
        self.from_state = from_state
        self.action = action
        super().__init__(
            f"Workflow {workflow} has no '{action}' transition from '{from_state}'"
        )


# Debt exceptions


class DebtError(ProcurementError):
    """Base exception for debt lifecycle errors."""

    code: str = "DEBT_ERROR"


class OverpaymentError(DebtError):
    """Payment amount is larger than the debt's remaining amount."""

    code: str = "OVERPAYMENT"

    def __init__(self, debt_id: str, payment: str, remaining: str):
        self.debt_id = debt_id
        self.payment = payment
        self.remaining = remaining
        super().__init__(
            f"Payment {payment} exceeds remaining {remaining} on debt {debt_id}"
        )


class DebtCancelledError(DebtError):
    """Operation not allowed on a cancelled debt."""

    code: str = "DEBT_CANCELLED"

    def __init__(self, debt_id: str):
        self.debt_id = debt_id
        super().__init__(f"Debt {debt_id} is cancelled")


class DebtLimitExceededError(DebtError):
    """Recognizing this amount would take the supplier above max_debt."""

    code: str = "DEBT_LIMIT_EXCEEDED"

    def __init__(self, supplier_id: str, outstanding: str, increment: str, max_debt: str):
        self.supplier_id = supplier_id
        self.outstanding = outstanding
        self.increment = increment
        self.max_debt = max_debt
        super().__init__(
            f"Supplier {supplier_id} debt {outstanding} + {increment} "
            f"exceeds limit {max_debt}"
        )


# Configuration exceptions


class ConfigurationError(ProcurementError):
    """Settings file or value is invalid."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")
