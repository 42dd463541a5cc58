"""Exceptions raised by the citation consistency engine."""


class CitationEngineError(Exception):
    """Base error for all engine failures."""

    def __init__(self, message: str = "Citation engine error"):
        self.message = message
        super().__init__(self.message)


class ValidationError(CitationEngineError):
    """Raised for a malformed citation token or an unparseable numeric range.

    Recovered locally: the offending token is skipped and the citation is
    flagged for review.
    """

    def __init__(self, message: str, token: str | None = None, citation_id: str | None = None):
        self.token = token
        self.citation_id = citation_id
        super().__init__(message)


class IntegrityError(CitationEngineError):
    """Raised when an operation would break reference numbering.

    Fatal to the operation: the document state is left untouched.
    """

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message)


class StyleFormattingError(CitationEngineError):
    """Raised when a style template cannot fully render a reference."""

    def __init__(
        self,
        message: str,
        missing_fields: list[str] | None = None,
        partial_text: str = "",
    ):
        self.missing_fields = missing_fields or []
        self.partial_text = partial_text
        super().__init__(message)


class OperationCancelledError(CitationEngineError):
    """Raised when a running operation is cancelled by its caller."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class ReferenceNotFoundError(CitationEngineError):
    """Raised when a reference id is not present in the store."""

    def __init__(self, reference_id: str):
        self.reference_id = reference_id
        super().__init__(f"Reference not found: {reference_id}")


class UnknownStyleError(CitationEngineError):
    """Raised when a style code does not name a supported style."""

    def __init__(self, style: str):
        self.style = style
        super().__init__(f"Unsupported citation style: {style}")


class DocumentLoadError(CitationEngineError):
    """Raised when a document payload cannot be loaded at all."""

    pass


class StatusPollTimeoutError(CitationEngineError):
    """Raised when a status poll exhausts its attempts."""

    def __init__(self, attempts: int, last_status: str | None = None):
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(f"Status still '{last_status}' after {attempts} attempts")
