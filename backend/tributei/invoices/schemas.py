import enum
from typing import Optional

from pydantic import Field

from tributei.common.schemas import AppBaseModel
from tributei.invoices.exceptions import LineItemAlreadyResolvedError
from tributei.products.schemas import MatchSource, ProductRecord
from tributei.taxes.schemas import TaxBreakdown


class LineItemStatus(str, enum.Enum):
    SEARCHING = "searching"
    FOUND = "found"
    NOT_FOUND = "not_found"


class LineItem(AppBaseModel):
    """
    One product line of an NF-e (det/prod), plus its resolution state.

    searching → found | not_found. Both terminal states are final.
    """
    code: str = Field("", description="Supplier product code (cProd)")
    description: str = Field("", description="Product description (xProd)")
    ncm: str = Field("", description="Tariff code (NCM)")
    barcode: str = Field("", description="Barcode (cEAN)")
    quantity: float = Field(0.0, description="Commercial quantity (qCom)")
    unit_price: float = Field(0.0, description="Commercial unit price (vUnCom)")
    total_price: float = Field(0.0, description="Line total (vProd)")
    discount: float = Field(0.0, description="Discount (vDesc)")
    origin: str = Field("0", description="Goods origin from the ICMS group (orig)")

    status: LineItemStatus = LineItemStatus.SEARCHING
    found_by: Optional[MatchSource] = None
    product: Optional[ProductRecord] = None
    taxes: Optional[TaxBreakdown] = None

    def _ensure_searching(self) -> None:
        if self.status != LineItemStatus.SEARCHING:
            raise LineItemAlreadyResolvedError(self.code, self.status.value)

    def mark_found(self, product: ProductRecord, taxes: TaxBreakdown, source: MatchSource) -> None:
        """
        Raises:
            LineItemAlreadyResolvedError: If the item left 'searching' already
        """
        self._ensure_searching()
        self.product = product
        self.taxes = taxes
        self.found_by = source
        self.status = LineItemStatus.FOUND

    def mark_not_found(self) -> None:
        """
        Raises:
            LineItemAlreadyResolvedError: If the item left 'searching' already
        """
        self._ensure_searching()
        self.product = None
        self.taxes = None
        self.found_by = None
        self.status = LineItemStatus.NOT_FOUND

    @property
    def is_resolved(self) -> bool:
        return self.status != LineItemStatus.SEARCHING


class InvoiceSummary(AppBaseModel):
    total_items: int = Field(..., ge=0)
    found: int = Field(..., ge=0)
    not_found: int = Field(..., ge=0)
    total_ibs: float = Field(0.0, description="Σ IBS unit value × quantity over found items")
    total_cbs: float = Field(0.0, description="Σ CBS unit value × quantity over found items")
    total_taxes: float = Field(0.0, description="IBS + CBS")


class InvoiceAnalysis(AppBaseModel):
    """Parsed NF-e document. Items are resolved in place by the batch analyzer."""
    file_name: str
    issue_date: Optional[str] = Field(None, description="dhEmi (or dEmi on older layouts), as written in the document")
    total_value: float = Field(0.0, description="Invoice total (ICMSTot/vNF)")
    items: list[LineItem] = Field(default_factory=list)

    def summary(self) -> InvoiceSummary:
        found_items = [item for item in self.items if item.status == LineItemStatus.FOUND and item.taxes]

        total_ibs = sum(item.taxes.ibs.value * item.quantity for item in found_items)
        total_cbs = sum(item.taxes.cbs.value * item.quantity for item in found_items)

        return InvoiceSummary(
            total_items=len(self.items),
            found=len(found_items),
            not_found=sum(1 for item in self.items if item.status == LineItemStatus.NOT_FOUND),
            total_ibs=total_ibs,
            total_cbs=total_cbs,
            total_taxes=total_ibs + total_cbs,
        )


# --- RESPONSES ---
class InvoiceAnalysisResponse(AppBaseModel):
    analysis: InvoiceAnalysis
    summary: InvoiceSummary
