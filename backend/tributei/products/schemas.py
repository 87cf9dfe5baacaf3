import enum
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import Field, field_validator

from tributei.common.normalization import parse_number
from tributei.common.schemas import AppBaseModel

DEFAULT_CST = "000"
DEFAULT_CCLASS = "01.001.00"
DEFAULT_CATEGORY = "Geral"
REFERENCE_BASE_PRICE = 100.0


class TaxType(str, enum.Enum):
    IBS = "ibs"
    CBS = "cbs"


class SearchMode(str, enum.Enum):
    NAME = "name"
    NCM = "ncm"


class LookupField(str, enum.Enum):
    ID = "id"
    BARCODE = "barcode"


class FindMode(str, enum.Enum):
    BARCODE = "barcode"
    NAME = "name"


class SearchOutcomeStatus(str, enum.Enum):
    FOUND = "found"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


class MatchSource(str, enum.Enum):
    """Which cascade step identified the product."""
    EAN = "EAN"
    NCM = "NCM"
    NAME = "Nome"


def _row_value(row: Any, field: str) -> Any:
    """Reads a column from an ORM row or a plain mapping (raw join result)."""
    if isinstance(row, Mapping):
        return row.get(field)
    return getattr(row, field, None)


def _first_present(row: Any, *fields: str) -> Any:
    """First populated value among column aliases (current alias first, legacy second). Blank cells count as absent."""
    for field in fields:
        value = _row_value(row, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        return value
    return None


def _code_value(row: Any, field: str, default: str) -> str:
    """Classification code as text; numeric cells (200, 200003) are accepted, blank ones fall back to the default."""
    value = _first_present(row, field)
    return str(value).strip() if value is not None else default


class TaxDetail(AppBaseModel):
    """
    One tax row (IBS or CBS) of a product, with column aliases already resolved.

    rate / reduction / final_rate are 0-100 percentages, as stored in the catalog.
    final_rate is None when the catalog never stored one.
    """
    cst: str = Field(DEFAULT_CST, description="Output classification code (CST)")
    cclass: str = Field(DEFAULT_CCLASS, description="Fine classification code (cClassTrib)")
    rate: float = Field(0.0, description="Nominal rate (%)")
    reduction: float = Field(0.0, description="Rate reduction (%)")
    final_rate: Optional[float] = Field(None, description="Final effective rate (%)")

    @classmethod
    def from_row(cls, row: Any) -> "TaxDetail":
        """
        Maps a raw 'ibs' / 'cbs' row to a TaxDetail.

        Alias order for every outbound field: current column, then legacy column.
        Values go through parse_number, so '18,5', '9%' and 17.7 are all accepted
        and garbage becomes 0. Empty codes fall back to their defaults.
        """
        raw_final_rate = _first_present(row, "alqfe_sai", "alqf_sai")

        return cls(
            cst=_code_value(row, "cst_saida", DEFAULT_CST),
            cclass=_code_value(row, "cclass_saida", DEFAULT_CCLASS),
            rate=parse_number(_first_present(row, "alqe_sai", "alq_sai")),
            reduction=parse_number(_first_present(row, "red_alqe_sai", "red_alq_sai")),
            final_rate=parse_number(raw_final_rate) if raw_final_rate is not None else None,
        )


class ProductSummary(AppBaseModel):
    """Lightweight projection used for disambiguation lists. Never carries tax data."""
    id: int = Field(..., gt=0)
    name: str = Field("", description="Product description")
    ean: str = Field("", description="Barcode (GTIN)")
    ncm: str = Field("", description="Tariff code (xxxx.xx.xx)")
    cest: Optional[str] = Field(None, description="Secondary classification code")

    @field_validator("name", "ean", "ncm", mode="before")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> str:
        return v or ""


class ProductRecord(ProductSummary):
    """
    Canonical catalog product with its tax rows.

    ibs / cbs are lists for join-shape compatibility, logically zero-or-one rows.
    """
    category: str = Field(DEFAULT_CATEGORY, description="Category label")
    price: float = Field(REFERENCE_BASE_PRICE, description="Unit price (reference base 100 when unknown)")
    ibs: list[TaxDetail] = Field(default_factory=list)
    cbs: list[TaxDetail] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Optional[str]) -> str:
        return v or DEFAULT_CATEGORY

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v: Any) -> float:
        # Brak ceny w katalogu (lub 0) → baza referencyjna 100
        return parse_number(v) or REFERENCE_BASE_PRICE

    def tax_detail(self, tax_type: TaxType) -> Optional[TaxDetail]:
        rows = self.ibs if tax_type == TaxType.IBS else self.cbs
        return rows[0] if rows else None


class SearchOutcome(AppBaseModel):
    """
    Result of an interactive search, with the disambiguation policy applied.

    FOUND: exactly one summary, record loaded automatically
    AMBIGUOUS: several summaries, caller presents the choices
    NOT_FOUND: terminal, caller switches to the request-new-product workflow
    """
    status: SearchOutcomeStatus
    product: Optional[ProductRecord] = None
    candidates: list[ProductSummary] = Field(default_factory=list)


class CascadeMatch(AppBaseModel):
    """Outcome of cascade resolution. Both fields are None when every step missed."""
    product: Optional[ProductRecord] = None
    source: Optional[MatchSource] = None

    @property
    def found(self) -> bool:
        return self.product is not None


# --- RESPONSES ---
class ProductSummaryListResponse(AppBaseModel):
    items: list[ProductSummary]
    total: int = Field(..., ge=0)
