from typing import Annotated

from fastapi import Depends

from tributei.ai.dependencies import get_insight_generator
from tributei.ai.service import InsightGenerator
from tributei.products.dependencies import get_product_resolver
from tributei.products.services import ProductResolver
from tributei.taxes.insights import InsightSelector, load_detailed_insights, load_simplified_insights
from tributei.taxes.services import TaxReportService


def get_insight_selector(
    generator: Annotated[InsightGenerator, Depends(get_insight_generator)]
) -> InsightSelector:
    return InsightSelector(
        simplified_table=load_simplified_insights(),
        detailed_table=load_detailed_insights(),
        generator=generator,
    )


async def get_tax_report_service(
    resolver: Annotated[ProductResolver, Depends(get_product_resolver)],
    insight_selector: Annotated[InsightSelector, Depends(get_insight_selector)]
) -> TaxReportService:
    return TaxReportService(resolver, insight_selector)


TaxReportDependency = Annotated[TaxReportService, Depends(get_tax_report_service)]
