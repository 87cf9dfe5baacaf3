"""
Tax computation for the IBS/CBS dual regime.

compute_taxes() is pure and total: any ProductRecord produces a breakdown,
missing rows and fields degrade to documented defaults.
"""
import logging
from typing import Optional, Union

from tributei.common.exceptions import ResourceNotFoundError
from tributei.products.schemas import (
    DEFAULT_CCLASS,
    DEFAULT_CST,
    LookupField,
    ProductRecord,
    REFERENCE_BASE_PRICE,
    TaxType,
)
from tributei.products.services import ProductResolver
from tributei.taxes.insights import InsightSelector
from tributei.taxes.schemas import TaxBreakdown, TaxComponent, TaxReport

logger = logging.getLogger(__name__)

# Domyślne stawki, gdy produkt nie ma wiersza w tabeli (zakładamy pełną stawkę)
DEFAULT_RATES = {
    TaxType.IBS: 8.8,
    TaxType.CBS: 17.7,
}

FOOD_CATEGORY = "Alimento"

# Legacy reference: ICMS 18% + PIS/COFINS 9.25% for general goods, 7% for food
LEGACY_FOOD_RATE = 0.07
LEGACY_GENERAL_RATE = 0.2725

FULL_EXEMPTION_REDUCTION = 100.0
CASHBACK_SHARE = 0.2


def _compute_component(product: ProductRecord, tax_type: TaxType, price: float) -> TaxComponent:
    detail = product.tax_detail(tax_type)

    if detail is not None:
        rate = detail.rate
        reduction = detail.reduction
    else:
        rate = DEFAULT_RATES[tax_type]
        reduction = 0.0

    value = price * (rate / 100) * (1 - reduction / 100)

    # Stored final rate wins; otherwise back-computed so value and rate always agree
    if detail is not None and detail.final_rate is not None:
        final_rate = detail.final_rate / 100
    else:
        final_rate = value / price

    return TaxComponent(
        value=value,
        rate=rate / 100,
        final_rate=final_rate,
        reduction=reduction,
        cst=detail.cst if detail else DEFAULT_CST,
        cclass=detail.cclass if detail else DEFAULT_CCLASS,
    )


def compute_taxes(product: ProductRecord, use_cashback: bool = False) -> TaxBreakdown:
    """
    Computes the IBS/CBS breakdown of one unit of a product.

    Per tax: value = price × rate/100 × (1 − reduction/100). The legacy total is
    a flat category-based estimate, not a historical lookup. Cashback is 20% of
    the new total, only when use_cashback is set.

    Args:
        product: Catalog product (its price is the unit price; 100 when unknown)
        use_cashback: Whether to estimate the redistribution amount

    Returns:
        TaxBreakdown (immutable)
    """
    price = product.price or REFERENCE_BASE_PRICE

    ibs = _compute_component(product, TaxType.IBS, price)
    cbs = _compute_component(product, TaxType.CBS, price)

    new_total = ibs.value + cbs.value

    is_food = product.category == FOOD_CATEGORY
    legacy_total = price * (LEGACY_FOOD_RATE if is_food else LEGACY_GENERAL_RATE)
    difference_percent = ((new_total - legacy_total) / legacy_total) * 100 if legacy_total else 0.0

    return TaxBreakdown(
        ibs=ibs,
        cbs=cbs,
        new_total=new_total,
        legacy_total=legacy_total,
        difference_percent=difference_percent,
        is_basic_basket=is_food or ibs.reduction == FULL_EXEMPTION_REDUCTION,
        cashback=new_total * CASHBACK_SHARE if use_cashback else 0.0,
    )


class TaxReportService:
    """
    Builds the full tax report of a single product:
    lookup → computation → insight.
    """

    def __init__(self, resolver: ProductResolver, insight_selector: InsightSelector):
        self.resolver = resolver
        self.insight_selector = insight_selector

    async def get_report(
        self,
        identifier: Union[int, str],
        by: LookupField = LookupField.ID,
        use_cashback: bool = False,
        price: Optional[float] = None
    ) -> TaxReport:
        """
        Raises:
            ResourceNotFoundError: If no product matches the identifier
        """
        product = await self.resolver.get_details(identifier, by)
        if not product:
            raise ResourceNotFoundError("Produto", identifier)

        if price:
            product = product.model_copy(update={"price": price})

        taxes = compute_taxes(product, use_cashback=use_cashback)
        insight = await self.insight_selector.select(product, taxes)

        logger.info(
            f"Tax report for product {product.id} ({product.name}): "
            f"IBS={taxes.ibs.final_rate:.4f}, CBS={taxes.cbs.final_rate:.4f}, "
            f"basic_basket={taxes.is_basic_basket}, insight={insight.source.value}"
        )

        return TaxReport(product=product, taxes=taxes, insight=insight)
