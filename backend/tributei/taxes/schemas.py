import enum
from typing import Optional

from pydantic import Field

from tributei.common.schemas import AppBaseModel, FrozenModel
from tributei.products.schemas import ProductRecord


class TaxComponent(FrozenModel):
    """Computed figures of one tax (IBS or CBS). Rates are 0-1 fractions, reduction is 0-100."""
    value: float = Field(..., description="Tax charged on the unit price")
    rate: float = Field(..., description="Nominal rate (fraction)")
    final_rate: float = Field(..., description="Final effective rate (fraction)")
    reduction: float = Field(..., description="Rate reduction (%)")
    cst: str = Field(..., description="Output classification code (CST)")
    cclass: str = Field(..., description="Fine classification code (cClassTrib)")


class TaxBreakdown(FrozenModel):
    """
    Result of compute_taxes(). Derived entirely from its inputs:
    no identity, no persistence.
    """
    ibs: TaxComponent
    cbs: TaxComponent
    new_total: float = Field(..., description="IBS + CBS under the new regime")
    legacy_total: float = Field(..., description="Estimated tax under the legacy regime (ICMS + PIS/COFINS)")
    difference_percent: float = Field(..., description="(new - legacy) / legacy * 100, 0 when legacy is 0")
    is_basic_basket: bool = Field(..., description="Cesta básica signal")
    cashback: float = Field(0.0, description="Estimated redistribution (cashback) amount")

    @property
    def combined_final_rate(self) -> float:
        return self.ibs.final_rate + self.cbs.final_rate


class InsightSource(str, enum.Enum):
    SIMPLIFIED = "simplified"
    DETAILED = "detailed"
    AI = "ai"


class Insight(FrozenModel):
    """Human-readable explanation of a tax profile."""
    source: InsightSource
    cclass: str
    text: str
    badge: Optional[str] = None
    title: Optional[str] = None
    sector: Optional[str] = None
    annex: Optional[str] = None


# --- RESPONSES ---
class TaxReport(AppBaseModel):
    product: ProductRecord
    taxes: TaxBreakdown
    insight: Insight
