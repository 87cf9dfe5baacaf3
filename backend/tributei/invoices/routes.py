import io

from fastapi import APIRouter, File, UploadFile, status
from fastapi.responses import StreamingResponse

from tributei.invoices.dependencies import InvoiceServiceDependency
from tributei.invoices.export import XLSX_MEDIA_TYPE
from tributei.invoices.schemas import InvoiceAnalysisResponse

router = APIRouter()


@router.post("/analyze", response_model=InvoiceAnalysisResponse, status_code=status.HTTP_200_OK, summary="Analyse an NF-e XML")
async def analyze_invoice(
    service: InvoiceServiceDependency,
    file: UploadFile = File(..., description="NF-e XML file")
):
    """
    Identifies every line of an NF-e and computes its IBS/CBS taxes.

    **File Requirements:**
    - Extension: .xml
    - Max size: 10MB

    **Response:**
    - Success (200): analysed items + IBS/CBS totals
    - Error (400): Invalid file
    - Error (422): Malformed XML or not an NF-e

    Items that cannot be identified come back as 'not_found'; they never fail the request.
    """
    # Wyjątki domenowe propagują się do globalnego exception handlera
    return await service.analyze_upload(file)


@router.post("/export", response_class=StreamingResponse, summary="Analyse an NF-e XML and download the result as XLSX")
async def export_invoice(
    service: InvoiceServiceDependency,
    file: UploadFile = File(..., description="NF-e XML file")
):
    """
    Same analysis as /analyze, returned as a spreadsheet attachment
    (one row per item, sheet 'Análise Tributária').

    Errors are the same as for /analyze (400 / 422).
    """
    file_name, content = await service.export_upload(file)

    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
