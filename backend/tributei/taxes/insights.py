"""
Insight selection for a computed tax profile.

Three tiers, first hit wins:
1. curated short-form entries (badge, short title, 3-line text),
2. curated long-form entries,
3. generative fallback (Gemini).
"""
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from tributei.ai.service import InsightGenerator
from tributei.products.schemas import ProductRecord
from tributei.taxes.schemas import Insight, InsightSource, TaxBreakdown

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

InsightTable = Dict[str, Dict[str, Any]]


def _load_table(file_name: str) -> InsightTable:
    """Loads a JSON list of entries and indexes it by classification code (first entry wins)."""
    with open(DATA_DIR / file_name, encoding="utf-8") as f:
        entries: List[Dict[str, Any]] = json.load(f)

    table: InsightTable = {}
    for entry in entries:
        table.setdefault(str(entry["cClass"]), entry)

    logger.info(f"Loaded {len(table)} insight entries from {file_name}")
    return table


@lru_cache(maxsize=1)
def load_simplified_insights() -> InsightTable:
    return _load_table("cclasstrib_simplificado.json")


@lru_cache(maxsize=1)
def load_detailed_insights() -> InsightTable:
    return _load_table("cclasstrib_insights.json")


def lookup_entry(table: InsightTable, cclass: str) -> Optional[Dict[str, Any]]:
    """Matches the stored code exactly or with dots removed ("200.003" -> "200003")."""
    if not cclass:
        return None
    return table.get(cclass) or table.get(cclass.replace(".", ""))


class InsightSelector:
    """
    Picks the explanation shown next to a tax breakdown.

    Tables are injected so tests can run on small fixtures; the app uses the
    cached package data.
    """

    def __init__(
        self,
        simplified_table: InsightTable,
        detailed_table: InsightTable,
        generator: InsightGenerator
    ):
        self.simplified_table = simplified_table
        self.detailed_table = detailed_table
        self.generator = generator

    async def select(self, product: ProductRecord, taxes: TaxBreakdown) -> Insight:
        # Klucz: cClass z IBS, a gdy pusty - z CBS
        cclass = taxes.ibs.cclass or taxes.cbs.cclass

        simple = lookup_entry(self.simplified_table, cclass)
        if simple:
            return Insight(
                source=InsightSource.SIMPLIFIED,
                cclass=cclass,
                text=simple.get("texto_3_linhas", ""),
                badge=simple.get("badge"),
                title=simple.get("titulo_curto"),
                sector=simple.get("categoria"),
                annex=simple.get("anexo"),
            )

        detailed = lookup_entry(self.detailed_table, cclass)
        if detailed:
            return Insight(
                source=InsightSource.DETAILED,
                cclass=cclass,
                text=detailed.get("insight", ""),
            )

        logger.info(f"No curated insight for cClass {cclass}, falling back to AI")
        text = await self.generator.generate_insight(
            product_name=product.name,
            category=product.category,
            ncm=product.ncm,
            taxes=taxes,
        )
        return Insight(source=InsightSource.AI, cclass=cclass, text=text)
