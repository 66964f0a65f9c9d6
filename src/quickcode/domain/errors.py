from __future__ import annotations


class QuickCodeError(Exception):
    """Base class for recoverable errors raised by the coding pipeline."""


class ExtractionError(QuickCodeError):
    """The extraction gateway could not produce an analysis result."""


class InvalidInput(ExtractionError):
    """The clinical note was missing, not text, or blank.

    Raised before any call to the model provider is made.
    """


class ServiceUnavailable(ExtractionError):
    """The model provider call itself failed.

    Callers may retry; the gateway never does.
    """


class MalformedModelOutput(ExtractionError):
    """The provider answered but the text was not the expected JSON shape.

    Kept apart from ServiceUnavailable because it points at a prompt or
    robustness defect rather than an outage.
    """


class ExportError(QuickCodeError):
    """The export sink refused a hand-off."""


class NothingToExport(ExportError):
    """Export was attempted with no accepted codes."""


class ReviewError(QuickCodeError):
    """A review session operation was rejected."""


class UnknownCode(ReviewError):
    """No suggestion with the requested code exists in the session."""


class InvalidStatusTransition(ReviewError):
    """The requested status change is not allowed from the current status."""


class ProviderConfigurationError(RuntimeError):
    """The selected model provider is missing its credential or library.

    Fatal at process start.
    """
