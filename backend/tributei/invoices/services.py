"""
Batch analysis of invoice line items.

Each item is pushed through the cascade resolver and, on a hit, taxed at the
unit price written in the document. A failing item never aborts the batch.
"""
import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterable, Optional, Union

from fastapi import UploadFile

from tributei.invoices.exceptions import InvoiceFileValidationError
from tributei.invoices.export import export_analysis_xlsx, export_file_name
from tributei.invoices.parser import parse_nfe_xml
from tributei.invoices.schemas import InvoiceAnalysis, InvoiceAnalysisResponse, LineItem
from tributei.products.services import CascadeResolver
from tributei.taxes.services import compute_taxes

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


class BatchAnalyzer:
    """
    Resolves invoice items one at a time, strictly in input order.

    Holds no state between batches; items are mutated in place through
    their state machine (mark_found / mark_not_found).
    """

    def __init__(self, cascade: CascadeResolver):
        self.cascade = cascade

    async def _resolve_item(self, item: LineItem) -> None:
        match = await self.cascade.resolve(item.barcode, item.ncm, item.description)

        if not match.found:
            item.mark_not_found()
            return

        # Podatki liczone od ceny jednostkowej z dokumentu, nie z katalogu
        priced = match.product.model_copy(update={"price": item.unit_price})
        taxes = compute_taxes(priced)
        item.mark_found(match.product, taxes, match.source)

    async def iter_analysis(self, items: Iterable[LineItem]) -> AsyncIterator[LineItem]:
        """
        Yields every item after resolving it.

        Lazy: the next item is not touched until the consumer asks for it, so
        stopping the iteration cancels the rest of the batch.
        """
        for item in items:
            if item.is_resolved:
                yield item
                continue

            try:
                await self._resolve_item(item)
            except Exception as e:
                logger.error(f"Error analysing item '{item.description}' (code={item.code}): {e}", exc_info=True)
                if not item.is_resolved:
                    item.mark_not_found()

            yield item

    async def analyze_batch(
        self,
        items: list[LineItem],
        on_progress: Optional[ProgressCallback] = None
    ) -> list[LineItem]:
        """
        Resolves the whole batch.

        Args:
            items: Line items (resolved in place)
            on_progress: Called once per item with (1-based index, total);
                may be a plain function or a coroutine function

        Returns:
            The same items, in input order
        """
        total = len(items)
        current = 0

        async for _ in self.iter_analysis(items):
            current += 1
            if on_progress is not None:
                result = on_progress(current, total)
                if inspect.isawaitable(result):
                    await result

        found = sum(1 for item in items if item.product is not None)
        logger.info(f"Batch analysis finished: {found}/{total} items identified")

        return items

    async def analyze_invoice(
        self,
        analysis: InvoiceAnalysis,
        on_progress: Optional[ProgressCallback] = None
    ) -> InvoiceAnalysis:
        await self.analyze_batch(analysis.items, on_progress=on_progress)
        return analysis


class InvoiceUploadService:
    """
    Upload flow: validate file → parse NF-e → batch analysis → summary.
    """
    ALLOWED_EXTENSION = ".xml"

    def __init__(self, analyzer: BatchAnalyzer, max_file_size: int):
        self.analyzer = analyzer
        self.max_file_size = max_file_size

    async def analyze_upload(self, file: UploadFile) -> InvoiceAnalysisResponse:
        """
        Raises:
            InvoiceFileValidationError: Wrong extension, empty or too large file
            InvoiceParseError: Malformed XML or not an NF-e
        """
        content = await self._read_validated(file)
        analysis = parse_nfe_xml(content, file.filename or "nfe.xml")

        await self.analyzer.analyze_invoice(analysis)
        summary = analysis.summary()

        logger.info(
            f"Invoice {analysis.file_name} analysed: {summary.found}/{summary.total_items} found, "
            f"IBS={summary.total_ibs:.2f}, CBS={summary.total_cbs:.2f}"
        )

        return InvoiceAnalysisResponse(analysis=analysis, summary=summary)

    async def export_upload(self, file: UploadFile) -> tuple[str, bytes]:
        """
        Same flow as analyze_upload, rendered as a spreadsheet.

        Returns:
            (file name, XLSX content)
        """
        response = await self.analyze_upload(file)
        return export_file_name(response.analysis), export_analysis_xlsx(response.analysis)

    async def _read_validated(self, file: UploadFile) -> bytes:
        file_name = (file.filename or "").lower()
        if not file_name.endswith(self.ALLOWED_EXTENSION):
            raise InvoiceFileValidationError("Formato inválido. Envie um arquivo .xml de NF-e")

        content = await file.read()

        if not content:
            raise InvoiceFileValidationError("Arquivo vazio")

        if len(content) > self.max_file_size:
            raise InvoiceFileValidationError(
                f"Arquivo muito grande. Tamanho máximo: {self.max_file_size / (1024 * 1024):.0f}MB"
            )

        return content
