import enum
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from freight_intake.exceptions import FreightIntakeError


@dataclass(frozen=True)
class Document:
    """Immutable reference to a stored document."""

    id: str
    filename: str
    mime_type: str
    storage_location: str

    @property
    def extension(self) -> str:
        return PurePosixPath(self.filename or "").suffix.lstrip(".").lower()

    @property
    def normalized_mime(self) -> str:
        return (self.mime_type or "").split(";", 1)[0].strip().lower()


@dataclass
class ExtractionResult:
    """Outcome of one strategy invocation. Failure is data, not an exception."""

    success: bool
    data: dict = field(default_factory=dict)
    confidence: float = 0.0
    strategy_used: str = ""
    metadata: dict = field(default_factory=dict)
    error: str | None = None
    error_type: str | None = None

    def __post_init__(self):
        self.confidence = max(0.0, min(1.0, float(self.confidence)))

    @classmethod
    def ok(cls, data: dict, confidence: float, strategy: str, metadata: dict | None = None) -> "ExtractionResult":
        return cls(
            success=True,
            data=data,
            confidence=confidence,
            strategy_used=strategy,
            metadata=metadata or {},
        )

    @classmethod
    def failure(
        cls,
        error: str | FreightIntakeError,
        strategy: str = "",
        metadata: dict | None = None,
    ) -> "ExtractionResult":
        error_type = error.error_type if isinstance(error, FreightIntakeError) else "extraction_failed"
        message = error.message if isinstance(error, FreightIntakeError) else str(error)
        return cls(
            success=False,
            data={"error": message},
            confidence=0.0,
            strategy_used=strategy,
            metadata=metadata or {},
            error=message,
            error_type=error_type,
        )


class Complexity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PdfMethod(str, enum.Enum):
    """Text-acquisition method chosen for a PDF."""

    PDF_PARSER = "pdf-parser"
    STREAMING = "streaming"
    OCR_DIRECT = "ocr-direct"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class PdfCharacteristics:
    size: int
    has_text_layer: bool
    is_scanned: bool
    complexity: Complexity
    text_density: float
    image_density: float
    page_count: int
    analysis_failed: bool = False

    @classmethod
    def conservative(cls, size: int = 0) -> "PdfCharacteristics":
        """Assumption used when analysis fails: scanned and high complexity."""
        return cls(
            size=size,
            has_text_layer=False,
            is_scanned=True,
            complexity=Complexity.HIGH,
            text_density=0.0,
            image_density=1.0,
            page_count=1,
            analysis_failed=True,
        )

    def to_dict(self) -> dict:
        return {
            "size": self.size,
            "has_text_layer": self.has_text_layer,
            "is_scanned": self.is_scanned,
            "complexity": self.complexity.value,
            "text_density": self.text_density,
            "image_density": self.image_density,
            "page_count": self.page_count,
            "analysis_failed": self.analysis_failed,
        }
