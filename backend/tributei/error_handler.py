from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tributei.common.exceptions import ResourceNotFoundError
from tributei.invoices.exceptions import (
    InvoiceFileValidationError,
    InvoiceParseError,
    LineItemAlreadyResolvedError,
)

def exception_handler(app: FastAPI) -> None:
    """
    Registers global exception handlers for the FastAPI application.
    Translates domain exceptions into HTTP responses.
    """

    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_handler(request: Request, exc: ResourceNotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": exc.message},
        )

    @app.exception_handler(InvoiceFileValidationError)
    async def invoice_file_validation_handler(request: Request, exc: InvoiceFileValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc)},
        )

    @app.exception_handler(InvoiceParseError)
    async def invoice_parse_error_handler(request: Request, exc: InvoiceParseError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    @app.exception_handler(LineItemAlreadyResolvedError)
    async def line_item_already_resolved_handler(request: Request, exc: LineItemAlreadyResolvedError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": exc.message},
        )
