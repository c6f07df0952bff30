"""
Error response models for restnest.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ErrorResponse


class ErrorBody(BaseModel):
    """Standard error response body.

    Every ``ErrorResponse`` leaving the handler pipeline is serialized with this
    model, so clients always see the same shape regardless of which handler,
    hook or middleware failed.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "Invalid request.",
                "error": "id must match URL path",
            }
        }
    )

    status: str = Field(
        ...,
        description="Human-readable summary of the HTTP status"
    )

    error: Optional[str] = Field(
        None,
        description="Details about what went wrong, omitted when there are none"
    )

    def model_dump(self, **kwargs):
        """Drop empty fields by default for cleaner responses."""
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)

    @classmethod
    def from_error(cls, error: ErrorResponse) -> "ErrorBody":
        """Create an ErrorBody from a request-scoped error."""
        return cls(status=error.status_text, error=error.error_text or None)
