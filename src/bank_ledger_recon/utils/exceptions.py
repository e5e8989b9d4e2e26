"""Custom exceptions for the reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class MalformedFileError(ReconciliationError):
    """A whole input file could not be decoded into records."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ExtractionError(ReconciliationError):
    """The external text extractor failed for a document."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
