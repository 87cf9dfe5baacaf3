from typing import Annotated

from fastapi import Depends

from tributei.config import settings
from tributei.invoices.services import BatchAnalyzer, InvoiceUploadService
from tributei.products.dependencies import CascadeDependency


async def get_batch_analyzer(cascade: CascadeDependency) -> BatchAnalyzer:
    return BatchAnalyzer(cascade)


async def get_invoice_upload_service(
    analyzer: Annotated[BatchAnalyzer, Depends(get_batch_analyzer)]
) -> InvoiceUploadService:
    return InvoiceUploadService(analyzer, max_file_size=settings.MAX_INVOICE_FILE_SIZE)


InvoiceServiceDependency = Annotated[InvoiceUploadService, Depends(get_invoice_upload_service)]
