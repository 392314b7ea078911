"""
Platform-wide exception hierarchy.

Services raise these types; blueprints translate them into HTTP responses.

Usage:
    from app.core.exceptions import DataSourceError, MalformedEngagementError

    raise DataSourceError("digital_employees query failed")
    raise MalformedEngagementError(42, "completed_at precedes started_at")
"""


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Signals that the data was readable but violated a business rule
    (negative duration, impossible timestamps, unknown phase).

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class MalformedEngagementError(ValidationError):
    """Raised when a single engagement snapshot cannot be forecast.

    Recoverable: the portfolio assembler catches it, excludes the engagement
    and reports it in the skipped list. It never aborts the whole portfolio.

    Args:
        engagement_id: Identifier of the offending engagement (may be None when
                       the id itself is missing).
        reason: Short human-readable description of the defect.
    """

    def __init__(self, engagement_id, reason: str) -> None:
        self.engagement_id = engagement_id
        self.reason = reason
        super().__init__(
            f"Engagement {engagement_id!r} is malformed: {reason}",
            details={"engagement_id": engagement_id, "reason": reason},
        )


class DataSourceError(Exception):
    """Raised when the collaborator supplying engagements fails or times out.

    Not recoverable: no prediction can be trusted without the underlying data,
    so callers surface a generic failure instead of a partial result.

    Maps to HTTP 500.
    """
