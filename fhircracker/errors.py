"""Domain errors raised by the bundle pipeline and the summarizer."""


class FhirCrackerError(Exception):
    """Base class for errors surfaced to API callers."""


class InvalidBundle(FhirCrackerError):
    """The submitted batch is not a well-formed FHIR Bundle."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid bundle: {reason}")


class SummarizationError(FhirCrackerError):
    """The text-generation provider failed; carries the HTTP status to report."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)
