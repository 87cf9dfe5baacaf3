from tributei.common.exceptions import AppError


class InvoiceError(AppError):
    """Base exception for invoice analysis"""
    pass


class InvoiceFileValidationError(InvoiceError):
    """Uploaded file rejected before parsing (extension, size, empty)"""
    pass


class InvoiceParseError(InvoiceError):
    """Malformed XML or not an NF-e document"""
    pass


class LineItemAlreadyResolvedError(InvoiceError):

    def __init__(self, item_code: str, status: str):
        self.message = f"Item {item_code} já foi resolvido (status: {status})."
        self.item_code = item_code
        self.status = status
        super().__init__(self.message)
