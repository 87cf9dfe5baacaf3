from typing import Optional

from fastapi import APIRouter, Query, status

from tributei.products.schemas import LookupField
from tributei.taxes.dependencies import TaxReportDependency
from tributei.taxes.schemas import TaxReport

router = APIRouter()


@router.get("/barcode/{ean}", response_model=TaxReport, status_code=status.HTTP_200_OK, summary="Tax report by barcode")
async def get_tax_report_by_barcode(
    ean: str,
    service: TaxReportDependency,
    cashback: bool = Query(False, description="Estimate cashback (20% of the new total)"),
    price: Optional[float] = Query(None, gt=0, description="Unit price; catalog price (or 100) when omitted")
):
    return await service.get_report(ean, by=LookupField.BARCODE, use_cashback=cashback, price=price)


@router.get("/{product_id}", response_model=TaxReport, status_code=status.HTTP_200_OK, summary="Tax report by product ID")
async def get_tax_report(
    product_id: int,
    service: TaxReportDependency,
    cashback: bool = Query(False, description="Estimate cashback (20% of the new total)"),
    price: Optional[float] = Query(None, gt=0, description="Unit price; catalog price (or 100) when omitted")
):
    """
    IBS/CBS breakdown of one product with its insight.
    Missing tax rows fall back to default rates, never to an error.
    """
    return await service.get_report(product_id, by=LookupField.ID, use_cashback=cashback, price=price)
