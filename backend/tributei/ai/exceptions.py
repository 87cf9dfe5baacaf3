from tributei.common.exceptions import AppError


class AIError(AppError):
    """Base exception for AI module."""
    pass

class InsightServiceError(AIError):
    """Raised when the insight model returns no usable answer."""
    pass
