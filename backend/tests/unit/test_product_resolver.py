"""
Unit tests for ProductResolver (interactive search) on an in-memory catalog.

Catalog ids follow the seeded_catalog fixture:
1 Arroz Integral, 2 Arroz Branco, 3 Cerveja Pilsen, 4 Sabonete.
"""
import pytest

from tributei.products.schemas import (
    FindMode,
    LookupField,
    SearchMode,
    SearchOutcomeStatus,
)
from tributei.products.services import ProductResolver


class TestSearchSummaries:
    """Tests for ProductResolver.search_summaries()."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_name_search_requires_every_token(self, product_resolver, seeded_catalog):
        results = await product_resolver.search_summaries("arroz integral", SearchMode.NAME)

        assert [r.name for r in results] == ["Arroz Integral Tipo 1 1kg"]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_name_search_tokens_in_any_order_and_case(self, product_resolver, seeded_catalog):
        results = await product_resolver.search_summaries("INTEGRAL arroz", SearchMode.NAME)
        assert [r.id for r in results] == [seeded_catalog["arroz_integral"].id]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_name_search_keeps_catalog_order(self, product_resolver, seeded_catalog):
        results = await product_resolver.search_summaries("arroz", SearchMode.NAME)

        assert [r.id for r in results] == [
            seeded_catalog["arroz_integral"].id,
            seeded_catalog["arroz_branco"].id,
        ]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_summaries_carry_no_tax_data(self, product_resolver, seeded_catalog):
        results = await product_resolver.search_summaries("cerveja", SearchMode.NAME)

        summary = results[0]
        assert summary.ean == "7891149103102"
        assert summary.ncm == "2203.00.00"
        assert not hasattr(summary, "ibs")

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_ncm_search_formats_undotted_code(self, product_resolver, seeded_catalog):
        results = await product_resolver.search_summaries("10063021", SearchMode.NCM)
        assert {r.name for r in results} == {"Arroz Integral Tipo 1 1kg", "Arroz Branco Tipo 1 5kg"}

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_ncm_search_matches_dotted_prefix(self, product_resolver, seeded_catalog):
        results = await product_resolver.search_summaries("2203.00", SearchMode.NCM)
        assert [r.name for r in results] == ["Cerveja Pilsen Lata 350ml"]

    @pytest.mark.parametrize("fragment", ["1006", "100630", "1006.30"])
    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_ncm_search_matches_partial_code(self, product_resolver, seeded_catalog, fragment):
        results = await product_resolver.search_summaries(fragment, SearchMode.NCM)

        assert [r.id for r in results] == [
            seeded_catalog["arroz_integral"].id,
            seeded_catalog["arroz_branco"].id,
        ]

    @pytest.mark.parametrize("query", ["", "   ", None])
    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_blank_query_matches_nothing(self, product_resolver, seeded_catalog, query):
        assert await product_resolver.search_summaries(query, SearchMode.NAME) == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_like_wildcards_are_literal(self, product_resolver, seeded_catalog):
        assert await product_resolver.search_summaries("%", SearchMode.NAME) == []
        assert await product_resolver.search_summaries("_", SearchMode.NAME) == []

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_results_limit(self, catalog_service, seeded_catalog):
        resolver = ProductResolver(catalog_service, results_limit=1)

        results = await resolver.search_summaries("arroz", SearchMode.NAME)

        assert len(results) == 1


class TestGetDetails:
    """Tests for ProductResolver.get_details()."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_by_id_loads_tax_rows(self, product_resolver, seeded_catalog):
        product = await product_resolver.get_details(seeded_catalog["cerveja"].id, LookupField.ID)

        assert product.name == "Cerveja Pilsen Lata 350ml"
        assert product.category == "Bebida"
        assert product.price == 100.0
        assert len(product.ibs) == 1
        assert product.ibs[0].rate == pytest.approx(17.7)
        assert product.cbs[0].rate == pytest.approx(9.3)
        assert product.cbs[0].final_rate == pytest.approx(9.3)
        assert product.cbs[0].cclass == "000.001"

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_by_barcode(self, product_resolver, seeded_catalog):
        product = await product_resolver.get_details("7896006711117", LookupField.BARCODE)

        assert product.id == seeded_catalog["arroz_integral"].id
        assert product.price == pytest.approx(8.9)

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_product_without_rows_has_empty_lists(self, product_resolver, seeded_catalog):
        product = await product_resolver.get_details(seeded_catalog["arroz_branco"].id)

        assert product.ibs == []
        assert product.cbs == []

    @pytest.mark.parametrize("identifier", [9999, "abc", None])
    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_missing_product_is_none(self, product_resolver, seeded_catalog, identifier):
        assert await product_resolver.get_details(identifier, LookupField.ID) is None

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_unknown_barcode_is_none(self, product_resolver, seeded_catalog):
        assert await product_resolver.get_details("0000000000001", LookupField.BARCODE) is None

    @pytest.mark.parametrize("barcode", ["SEM GTIN", "sem gtin", "", "   ", "0000000000000"])
    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_placeholder_barcode_is_never_looked_up(self, product_resolver, seeded_catalog, barcode):
        # Sabonete is stored with ean='SEM GTIN'; it must not answer a barcode lookup
        assert await product_resolver.get_details(barcode, LookupField.BARCODE) is None


class TestFindSingle:
    """Tests for ProductResolver.find_single()."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_name_mode_takes_first_in_catalog_order(self, product_resolver, seeded_catalog):
        # "Arroz Branco" sorts first alphabetically, but "Arroz Integral" was inserted first
        product = await product_resolver.find_single("arroz", FindMode.NAME)
        assert product.id == seeded_catalog["arroz_integral"].id

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_barcode_mode(self, product_resolver, seeded_catalog):
        product = await product_resolver.find_single("7891149103102", FindMode.BARCODE)
        assert product.id == seeded_catalog["cerveja"].id

    @pytest.mark.parametrize("barcode", ["SEM GTIN", ""])
    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_barcode_mode_ignores_placeholder_barcodes(self, product_resolver, seeded_catalog, barcode):
        assert await product_resolver.find_single(barcode, FindMode.BARCODE) is None

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_no_match_is_none(self, product_resolver, seeded_catalog):
        assert await product_resolver.find_single("feijao", FindMode.NAME) is None


class TestResolveQuery:
    """Tests for ProductResolver.resolve_query() disambiguation policy."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_single_hit_is_loaded(self, product_resolver, seeded_catalog):
        outcome = await product_resolver.resolve_query("sabonete")

        assert outcome.status == SearchOutcomeStatus.FOUND
        assert outcome.product.id == seeded_catalog["sabonete"].id
        assert outcome.product.ibs[0].reduction == pytest.approx(60.0)

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_several_hits_sorted_alphabetically(self, product_resolver, seeded_catalog):
        outcome = await product_resolver.resolve_query("arroz")

        assert outcome.status == SearchOutcomeStatus.AMBIGUOUS
        assert outcome.product is None
        assert [c.name for c in outcome.candidates] == [
            "Arroz Branco Tipo 1 5kg",
            "Arroz Integral Tipo 1 1kg",
        ]

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_no_hit_is_not_found(self, product_resolver, seeded_catalog):
        outcome = await product_resolver.resolve_query("feijao preto")

        assert outcome.status == SearchOutcomeStatus.NOT_FOUND
        assert outcome.candidates == []
