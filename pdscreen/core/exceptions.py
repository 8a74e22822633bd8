"""Error taxonomy for the screening pipeline"""


class ScreeningError(Exception):
    """Base class for all screening pipeline errors"""


class InvalidInputError(ScreeningError, ValueError):
    """Input could not be decoded, is empty, or is out of range"""


class DegenerateSignalError(ScreeningError):
    """
    Signal decoded fine but carries no usable information
    (silence, zero-variance image).

    Extractors raise this internally and recover by returning safe
    default features.
    """


class ModelUnavailableError(ScreeningError):
    """A classifier or keypoint model dependency is missing"""


class ExtractionTimeoutError(ScreeningError, TimeoutError):
    """Extraction did not finish within the configured time budget"""
