"""
Error taxonomy for the Hotel Concierge AI service

Every error carries a machine-readable code that the API layer maps to an
HTTP status (see api/exception_handlers.py).
"""

from typing import Optional


class ConciergeError(Exception):
    """Base error for the service"""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class QueryValidationError(ConciergeError):
    """Empty, whitespace-only or oversized query. Rejected before any downstream call."""

    code = "VALIDATION_ERROR"
    status_code = 400


class UpstreamUnavailable(ConciergeError):
    """Cache, vector index, embedding or generation provider unreachable"""

    code = "UPSTREAM_UNAVAILABLE"
    status_code = 503

    def __init__(self, component: str, message: str = ""):
        super().__init__(message or f"{component} unavailable", {"component": component})
        self.component = component


class GenerationFailed(UpstreamUnavailable):
    """Text generation failed or returned nothing usable"""

    code = "GENERATION_FAILED"

    def __init__(self, message: str = "text generation failed"):
        super().__init__("generator", message)


class StepTimeout(ConciergeError):
    """A pipeline step exceeded its latency budget"""

    code = "TIMEOUT"
    status_code = 504

    def __init__(self, step: str, budget_seconds: float):
        super().__init__(
            f"step '{step}' exceeded its {budget_seconds:.2f}s budget",
            {"step": step, "budget_seconds": budget_seconds},
        )
        self.step = step
        self.budget_seconds = budget_seconds


class ServiceUnavailableError(ConciergeError):
    """Cache and retrieval are both down; nothing left to answer with"""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503


class GroundingViolation(ConciergeError):
    """A composed reply referenced hotels outside its retrieval result"""

    code = "GROUNDING_VIOLATION"
    status_code = 500


class WebhookVerificationError(ConciergeError):
    code = "WEBHOOK_REJECTED"
    status_code = 403


class WebhookNotConfiguredError(ConciergeError):
    code = "WEBHOOK_NOT_CONFIGURED"
    status_code = 503


class DataIntegrityWarning(UserWarning):
    """
    A catalog record is missing or has malformed fields.

    Never raised to callers: the field is default-filled, the warning is
    logged and reported back in ingestion results.
    """

    def __init__(self, hotel_id: str, field: str, message: str = ""):
        super().__init__(message or f"{hotel_id}: '{field}' missing or malformed, default used")
        self.hotel_id = hotel_id
        self.field = field

    def __str__(self) -> str:
        return self.args[0]


class InvalidPayloadError(ConciergeError):
    """Request body could not be parsed"""

    code = "VALIDATION_ERROR"
    status_code = 400
