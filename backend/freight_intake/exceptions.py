"""
Error taxonomy for the extraction-and-mapping pipeline.

Every error carries the document id, strategy name and field name (when known)
so recovered failures can be logged with full context.
"""


class FreightIntakeError(Exception):
    """Base class for all pipeline errors."""

    error_type = "freight_intake_error"

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        strategy: str | None = None,
        field: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.document_id = document_id
        self.strategy = strategy
        self.field = field

    def context(self) -> dict:
        return {
            "error_type": self.error_type,
            "document_id": self.document_id,
            "strategy": self.strategy,
            "field": self.field,
        }

    def __str__(self) -> str:
        parts = [self.message]
        for key in ("document_id", "strategy", "field"):
            value = getattr(self, key)
            if value:
                parts.append(f"{key}={value}")
        return " ".join(parts)


class UnsupportedDocumentType(FreightIntakeError):
    """No registered strategy claims the document."""

    error_type = "unsupported_document_type"


class SourceUnavailable(FreightIntakeError):
    """Storage read failed. Retryable once storage is reachable."""

    error_type = "source_unavailable"


class DocumentNotFound(SourceUnavailable):
    error_type = "document_not_found"


class ExtractionFailed(FreightIntakeError):
    """A strategy ran but produced no usable data."""

    error_type = "extraction_failed"


class ValidationFailed(FreightIntakeError):
    """A mapped field failed its validation rule."""

    error_type = "validation_failed"

    def __init__(self, message: str, rule: str | None = None, value=None, **kwargs):
        super().__init__(message, **kwargs)
        self.rule = rule
        self.value = value


class ConfigurationError(FreightIntakeError):
    """Mapping configuration missing or malformed. Fatal at startup."""

    error_type = "configuration_error"
