"""
Product resolution: catalog access, interactive search and cascade lookup.

ProductCatalogService is the only class that talks to the database. The
resolvers receive it (or each other) through the constructor, so tests can
swap the catalog for an in-memory SQLite session or a fake.
"""
import logging
import re
from typing import Optional, Sequence, Union

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tributei.common.normalization import format_ncm, is_meaningful_barcode, name_similarity
from tributei.products.models import Product, IbsTaxRow, CbsTaxRow
from tributei.products.schemas import (
    CascadeMatch,
    FindMode,
    LookupField,
    MatchSource,
    ProductRecord,
    ProductSummary,
    SearchMode,
    SearchOutcome,
    SearchOutcomeStatus,
    TaxDetail,
    TaxType,
)

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_LIMIT = 50
NCM_DIGITS = 8

TaxRow = Union[IbsTaxRow, CbsTaxRow]

_TAX_ROW_MODELS = {
    TaxType.IBS: IbsTaxRow,
    TaxType.CBS: CbsTaxRow,
}


def _like_pattern(fragment: str) -> str:
    """'%fragment%' with LIKE wildcards of the user input escaped."""
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ProductCatalogService:
    """
    Read-only access to the tax catalog (products, ibs, cbs).
    One query per call.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        stmt = select(Product).where(Product.id == product_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_barcode(self, ean: str) -> Optional[Product]:
        # Unikalność EAN nie jest gwarantowana przez tę warstwę - bierzemy pierwszy
        stmt = select(Product).where(Product.ean == ean).order_by(Product.id).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def search_by_ncm(self, fragment: str, limit: int = DEFAULT_RESULTS_LIMIT) -> Sequence[Product]:
        """Substring match on the stored code; an un-dotted fragment is matched against the bare digits."""
        column = Product.ncm if "." in fragment else func.replace(Product.ncm, ".", "")
        stmt = (
            select(Product)
            .where(column.ilike(_like_pattern(fragment), escape="\\"))
            .order_by(Product.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def search_by_name_tokens(self, tokens: Sequence[str], limit: int = DEFAULT_RESULTS_LIMIT) -> Sequence[Product]:
        """Every token must appear (case-insensitive substring) in the product name."""
        if not tokens:
            return []

        stmt = select(Product)
        for token in tokens:
            stmt = stmt.where(Product.name.ilike(_like_pattern(token), escape="\\"))
        stmt = stmt.order_by(Product.id).limit(limit)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_tax_row(self, product_id: int, tax_type: TaxType) -> Optional[TaxRow]:
        model = _TAX_ROW_MODELS[tax_type]
        stmt = select(model).where(model.product_id == product_id).order_by(model.id).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()


class ProductResolver:
    """
    Resolves a user query (barcode, name or NCM) to catalog products.

    "Not found" is a normal outcome here: lookups return None or an empty list,
    never raise.
    """

    def __init__(self, catalog: ProductCatalogService, results_limit: int = DEFAULT_RESULTS_LIMIT):
        self.catalog = catalog
        self.results_limit = results_limit

    async def search_summaries(self, query: str, mode: SearchMode = SearchMode.NAME) -> list[ProductSummary]:
        """
        Lists matching products (at most results_limit), in catalog order.

        NCM mode: substring match on the code. A full un-dotted code is
        formatted first ("10063021" → "1006.30.21"); a shorter digit run
        ("1006") is matched against the code without dots.
        Name mode: the query is split on whitespace and every token must be
        contained in the name (AND, any order). A blank query matches nothing.
        """
        query = (query or "").strip()
        if not query:
            return []

        if mode == SearchMode.NCM:
            rows = await self.catalog.search_by_ncm(self._ncm_fragment(query), limit=self.results_limit)
        else:
            rows = await self.catalog.search_by_name_tokens(query.split(), limit=self.results_limit)

        logger.debug(f"Search '{query}' (mode={mode.value}) returned {len(rows)} products")

        return [self._to_summary(row) for row in rows]

    async def get_details(self, identifier: Union[int, str], by: LookupField = LookupField.ID) -> Optional[ProductRecord]:
        """
        Loads a product with its IBS and CBS rows (one fetch per tax type).

        Returns None when no product matches.
        """
        if by == LookupField.ID:
            try:
                product_id = int(identifier)
            except (TypeError, ValueError):
                logger.debug(f"Invalid product id: {identifier!r}")
                return None
            product = await self.catalog.get_by_id(product_id)
        else:
            # 'SEM GTIN', puste i same zera to brak kodu, nie kod
            if not is_meaningful_barcode(str(identifier) if identifier is not None else None):
                logger.debug(f"Barcode lookup skipped for {identifier!r}")
                return None
            product = await self.catalog.get_by_barcode(str(identifier).strip())

        if not product:
            return None

        ibs_row = await self.catalog.get_tax_row(product.id, TaxType.IBS)
        cbs_row = await self.catalog.get_tax_row(product.id, TaxType.CBS)

        return ProductRecord(
            id=product.id,
            name=product.name,
            ean=product.ean,
            ncm=product.ncm,
            cest=product.cest,
            category=product.category,
            price=product.price,
            ibs=[TaxDetail.from_row(ibs_row)] if ibs_row is not None else [],
            cbs=[TaxDetail.from_row(cbs_row)] if cbs_row is not None else [],
        )

    async def find_single(self, query: str, mode: FindMode = FindMode.NAME) -> Optional[ProductRecord]:
        """
        Convenience lookup returning one product.

        Barcode mode is an exact lookup. Name mode takes the FIRST summary in
        catalog order (not alphabetical) and loads its details.
        """
        if mode == FindMode.BARCODE:
            return await self.get_details(query, LookupField.BARCODE)

        summaries = await self.search_summaries(query, SearchMode.NAME)
        if not summaries:
            return None

        return await self.get_details(summaries[0].id, LookupField.ID)

    async def resolve_query(self, query: str, mode: SearchMode = SearchMode.NAME) -> SearchOutcome:
        """
        Interactive search with the disambiguation policy applied:
        one hit is loaded automatically, several hits are returned sorted
        alphabetically for display, zero hits is a terminal NOT_FOUND.
        """
        summaries = await self.search_summaries(query, mode)

        if len(summaries) == 1:
            product = await self.get_details(summaries[0].id, LookupField.ID)
            if product:
                return SearchOutcome(status=SearchOutcomeStatus.FOUND, product=product, candidates=summaries)
            return SearchOutcome(status=SearchOutcomeStatus.NOT_FOUND)

        if summaries:
            ordered = sorted(summaries, key=lambda summary: summary.name.casefold())
            return SearchOutcome(status=SearchOutcomeStatus.AMBIGUOUS, candidates=ordered)

        return SearchOutcome(status=SearchOutcomeStatus.NOT_FOUND)

    @staticmethod
    def _ncm_fragment(query: str) -> str:
        if "." not in query and len(re.sub(r"\D", "", query)) == NCM_DIGITS:
            return format_ncm(query)
        return query

    def _to_summary(self, product: Product) -> ProductSummary:
        return ProductSummary(
            id=product.id,
            name=product.name,
            ean=product.ean,
            ncm=product.ncm,
            cest=product.cest,
        )


class CascadeResolver:
    """
    Identifies the catalog product behind an invoice line.

    Strict priority, stopping at the first hit:
    1. EAN - exact barcode (skipped for empty, 'SEM GTIN' and all-zero codes)
    2. NCM - tariff code search (same substring policy as interactive search)
    3. Nome - free-text AND search (same tokenized search as interactive search)

    Within steps 2 and 3 the hits are re-ranked by similarity to the
    description; catalog order breaks ties.
    """

    def __init__(self, resolver: ProductResolver):
        self.resolver = resolver

    async def resolve(
        self,
        barcode: Optional[str] = None,
        ncm: Optional[str] = None,
        free_text: Optional[str] = None
    ) -> CascadeMatch:
        # Krok 1: EAN (najbardziej wiarygodny identyfikator)
        if is_meaningful_barcode(barcode):
            product = await self.resolver.get_details(barcode.strip(), LookupField.BARCODE)
            if product:
                return CascadeMatch(product=product, source=MatchSource.EAN)

        # Krok 2: NCM
        if ncm and ncm.strip():
            candidates = await self.resolver.search_summaries(ncm, SearchMode.NCM)
            product = await self._load_best_candidate(candidates, free_text)
            if product:
                return CascadeMatch(product=product, source=MatchSource.NCM)

        # Krok 3: Nazwa (ostatnia deska ratunku)
        if free_text and free_text.strip():
            candidates = await self.resolver.search_summaries(free_text, SearchMode.NAME)
            product = await self._load_best_candidate(candidates, free_text)
            if product:
                return CascadeMatch(product=product, source=MatchSource.NAME)

        logger.debug(f"Cascade miss: ean={barcode!r}, ncm={ncm!r}, text={free_text!r}")
        return CascadeMatch()

    async def _load_best_candidate(
        self,
        candidates: list[ProductSummary],
        free_text: Optional[str]
    ) -> Optional[ProductRecord]:
        if not candidates:
            return None

        ranked = candidates
        if free_text:
            # sorted() is stable: equal scores keep catalog order
            ranked = sorted(candidates, key=lambda summary: name_similarity(free_text, summary.name), reverse=True)

        return await self.resolver.get_details(ranked[0].id, LookupField.ID)
