"""Fatal importer errors.

Every error that aborts a run derives from ImporterError and carries a single
human-readable message. The FailureKind lets the HTTP and CLI layers decide
between "bad input" and "internal failure" without parsing messages.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Classification of fatal importer failures."""

    INVALID_INPUT = "invalid_input"
    MISSING_CONFIGURATION = "missing_configuration"
    EMPTY_RESULT = "empty_result"
    EXTERNAL_API_ERROR = "external_api_error"
    UNKNOWN = "unknown"


class ImporterError(Exception):
    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingCredentialsError(ImporterError):
    kind = FailureKind.MISSING_CONFIGURATION


class InvalidShowcaseUrlError(ImporterError):
    kind = FailureKind.INVALID_INPUT


class NoItemsFoundError(ImporterError):
    kind = FailureKind.EMPTY_RESULT


class CatalogReadError(ImporterError):
    kind = FailureKind.EXTERNAL_API_ERROR


class ShowcaseFetchError(ImporterError):
    kind = FailureKind.EXTERNAL_API_ERROR
