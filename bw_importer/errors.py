"""
Exceptions raised by the import pipeline.

Each exception carries the message shown to the user. Components raise them;
only the workflow turns them into an ImportResult.
"""


class ImporterError(Exception):
    """Base class for all import failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ImporterError):
    """Raised when required settings are missing."""


class ExportError(ImporterError):
    """Raised when the LastPass vault could not be exported."""


class CliSetupError(ImporterError):
    """Raised when the Bitwarden CLI could not be downloaded or installed."""


class ChecksumMismatchError(CliSetupError):
    """Raised when a downloaded CLI archive does not match its published checksum."""


class CliCommandError(ImporterError):
    """Raised when a Bitwarden CLI invocation fails."""

    def __init__(self, step: str, message: str):
        super().__init__(message)
        self.step = step
