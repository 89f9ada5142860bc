"""Unified conversion exception taxonomy.

Every domain exception inherits from ``ConverterError`` and carries
structured context fields so the orchestrator can report a consistent
error state regardless of which stage failed.

Taxonomy categories
-------------------
- ``ValidationError``: wrong file type, empty input, missing column
  mapping. Reported immediately, no parse attempted.
- ``PermanentError``: malformed documents, zero extractable records,
  unusable collaborator output.
- ``TransientError``: network failures talking to a collaborator.
  Flagged retryable, but nothing retries automatically.
- ``ContractError``: payload shape drift at a collaborator boundary.

Every exception exposes ``to_error_dict()`` for a stable structured
error payload suitable for logging and for ``ConversionResult``.
"""

from __future__ import annotations


class ConverterError(Exception):
    """Base exception for all conversion-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Stage where the error occurred
            (e.g. ``"parse_kml"``, ``"coordinates"``).
        code: Machine-readable error code (e.g. ``"KML_PARSE_FAILED"``).
        retryable: Whether a later attempt could succeed unchanged.
        correlation_id: Identifier of the conversion attempt.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        self.correlation_id = correlation_id
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ContractError):
            return "contract"
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(ConverterError):
    """Input validation failure. Never retryable."""

    default_code = "VALIDATION_FAILED"

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(ConverterError):
    """Temporary failure that may succeed on a later attempt."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(ConverterError):
    """Unrecoverable failure for this input. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class ContractError(ConverterError):
    """Payload or schema drift at a collaborator boundary. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------


class FileTypeError(ValidationError):
    """Raised when a file fails its mode's extension/MIME gate."""

    default_stage = "ingress"
    default_code = "FILE_TYPE_REJECTED"


class MissingInputError(ValidationError):
    """Raised when a mode receives no file and no (non-blank) text."""

    default_stage = "ingress"
    default_code = "INPUT_MISSING"


class ColumnMappingError(ValidationError):
    """Raised when DMS latitude/longitude columns were not selected."""

    default_stage = "coordinates"
    default_code = "COLUMN_MAPPING_MISSING"


class ColumnDetectionError(ValidationError):
    """Raised when required coordinate columns cannot be auto-detected."""

    default_stage = "coordinates"
    default_code = "COLUMN_DETECTION_FAILED"


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class ParseError(PermanentError):
    """Raised when an input document cannot be turned into records."""

    default_stage = "parse"
    default_code = "PARSE_FAILED"


class ArchiveError(ParseError):
    """Raised when a zip archive is unreadable or lacks the expected member."""

    default_stage = "archive"
    default_code = "ARCHIVE_INVALID"
