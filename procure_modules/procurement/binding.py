"""
Contract-Order Binding.

Binds a purchase order draft to a contract: the contract forces the
supplier, limits the selectable products to its own lines, pre-fills line
pricing from the matching contract line and caps each line's quantity at
the contracted quantity.

Without a contract (or with a contract that has no lines) any catalog
product may be chosen and priced by the operator.

Quantity caps are per line; quantities across several orders against the
same contract are not aggregated.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

from procure_kernel.exceptions import (
    BindingValidationError,
    DocumentValidationError,
    ProductNotInContractError,
    QuantityExceedsContractError,
)
from procure_kernel.logging_config import get_logger
from procure_modules._line_items import LineItem, LineItemInput
from procure_modules.contracts.models import Contract
from procure_modules.procurement.drafts import DocumentDraft
from procure_modules.procurement.models import CatalogProduct

logger = get_logger("modules.procurement.binding")


@dataclass(frozen=True)
class BindingContext:
    """
    Resolved options for a draft under an optional contract.

    ``restricted`` is True when the contract has lines, in which case
    ``products`` are the contract's products and every order line must
    match one of them.
    """
    contract: Contract | None
    supplier_id: str | None
    supplier_locked: bool
    products: tuple[CatalogProduct, ...]
    restricted: bool

    @property
    def contract_id(self) -> str | None:
        return self.contract.id if self.contract else None

    def product(self, product_ref: str) -> CatalogProduct | None:
        for p in self.products:
            if p.product_ref == product_ref:
                return p
        return None


class ContractBindingResolver:
    """
    Resolve product options and validate order lines against a contract.

    ``catalog`` is any object providing ``list_products()`` and
    ``list_products_for_contract(contract_id)``.
    """

    def __init__(
        self,
        catalog,
        enforce_contract_quantity: bool = True,
        restrict_to_contract_products: bool = True,
    ):
        self._catalog = catalog
        self._enforce_quantity = enforce_contract_quantity
        self._restrict_products = restrict_to_contract_products

    def resolve(self, draft: DocumentDraft, contract: Contract | None) -> BindingContext:
        if contract is None:
            return BindingContext(
                contract=None,
                supplier_id=draft.supplier_id,
                supplier_locked=False,
                products=tuple(self._catalog.list_products()),
                restricted=False,
            )

        if draft.supplier_id and draft.supplier_id != contract.supplier_id:
            logger.info(
                "contract_supplier_forced",
                extra={
                    "contract_id": contract.id,
                    "previous_supplier_id": draft.supplier_id,
                    "supplier_id": contract.supplier_id,
                },
            )

        if contract.items:
            products = tuple(self._catalog.list_products_for_contract(contract.id))
        else:
            products = tuple(self._catalog.list_products())

        return BindingContext(
            contract=contract,
            supplier_id=contract.supplier_id,
            supplier_locked=True,
            products=products,
            restricted=bool(contract.items),
        )

    def prefill(self, context: BindingContext, product_ref: str) -> LineItemInput:
        """
        Starting input for a newly selected product.

        Bound to a contract line, every pricing field comes from that line;
        an amount-based discount or tax stays amount-based.  Unbound, the
        unit price defaults to the catalog cost price and quantity to 1.
        """
        contract_line = self._contract_line(context, product_ref)
        if contract_line is not None:
            return _input_from_contract_line(contract_line)

        if context.restricted and self._restrict_products:
            raise ProductNotInContractError(product_ref, context.contract_id)

        product = context.product(product_ref)
        return LineItemInput(
            product_ref=product_ref,
            quantity=1,
            unit_price=product.cost_price if product else Decimal("0"),
        )

    def check_line(
        self,
        context: BindingContext,
        line: LineItemInput,
        index: int | None = None,
    ) -> None:
        """Raise if ``line`` violates the bound contract."""
        if context.contract is None or not context.restricted:
            return

        contract_line = self._contract_line(context, line.product_ref)
        if contract_line is None:
            if self._restrict_products:
                raise ProductNotInContractError(
                    line.product_ref, context.contract_id, line_index=index,
                )
            return

        if self._enforce_quantity and line.quantity > contract_line.quantity:
            logger.info(
                "contract_quantity_exceeded",
                extra={
                    "contract_id": context.contract_id,
                    "product_ref": line.product_ref,
                    "requested": line.quantity,
                    "allowed": contract_line.quantity,
                    "line_index": index,
                },
            )
            raise QuantityExceedsContractError(
                product_ref=line.product_ref,
                requested=line.quantity,
                allowed=contract_line.quantity,
                contract_id=context.contract_id,
                line_index=index,
            )

    def check_lines(self, context: BindingContext, lines: Sequence[LineItemInput]) -> None:
        """Validate every line, raising one BindingValidationError for all failures."""
        errors: list[DocumentValidationError] = []
        for i, line in enumerate(lines):
            try:
                self.check_line(context, line, i)
            except DocumentValidationError as e:
                errors.append(e)
        if errors:
            logger.warning(
                "binding_validation_failed",
                extra={
                    "contract_id": context.contract_id,
                    "error_count": len(errors),
                    "line_indexes": [e.line_index for e in errors],
                },
            )
            raise BindingValidationError(errors)

    def rebind(
        self,
        draft: DocumentDraft,
        new_contract: Contract | None,
    ) -> tuple[DocumentDraft, BindingContext]:
        """
        Switch the draft to ``new_contract`` (or unbind it with None).

        Options are re-resolved and every line already entered is checked
        against the new contract.  The draft is returned unchanged in
        content; only supplier and contract reference are updated.
        """
        context = self.resolve(draft, new_contract)
        self.check_lines(context, draft.lines)
        rebound = replace(
            draft,
            contract_id=context.contract_id,
            supplier_id=context.supplier_id,
            supplier_locked=context.supplier_locked,
        )
        logger.info(
            "draft_rebound",
            extra={
                "contract_id": context.contract_id,
                "supplier_id": context.supplier_id,
                "line_count": len(draft.lines),
            },
        )
        return rebound, context

    @staticmethod
    def _contract_line(context: BindingContext, product_ref: str) -> LineItem | None:
        if context.contract is None:
            return None
        return context.contract.item_for(product_ref)


def _input_from_contract_line(item: LineItem) -> LineItemInput:
    pricing = item.pricing
    return LineItemInput(
        product_ref=item.product_ref,
        quantity=item.quantity,
        unit_price=pricing.unit_price.amount,
        discount_rate=None if pricing.discount_from_amount else pricing.discount_rate,
        discount_amount=pricing.discount_amount.amount if pricing.discount_from_amount else None,
        tax_rate=None if pricing.tax_from_amount else pricing.tax_rate,
        tax_amount=pricing.tax_amount.amount if pricing.tax_from_amount else None,
        note=item.note,
    )
