"""Exception hierarchy for the handover controller."""


class HandoverError(Exception):
    """Base class for controller specific exceptions."""


class MalformedReportError(HandoverError):
    """Raised when a measurement report breaks the decoder contract."""
