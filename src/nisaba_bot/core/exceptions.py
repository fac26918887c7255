"""Custom exceptions for Nisaba Bot."""

from __future__ import annotations


class NisabaError(Exception):
    """Base exception for all bot errors."""

    pass


class ConfigurationError(NisabaError):
    """Raised when configuration is missing or invalid.

    Configuration errors raised during startup are fatal.
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            config_key: Configuration key that is invalid
        """
        self.config_key = config_key
        super().__init__(message)


class TranscriptError(NisabaError):
    """Raised when the transcript file cannot be read or written."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class ArchiveError(TranscriptError):
    """Raised when a transcript archive index is invalid or missing."""

    def __init__(self, message: str, index: int | None = None) -> None:
        self.index = index
        super().__init__(message)


class ParameterProfileError(NisabaError):
    """Raised when a parameter profile cannot be loaded."""

    def __init__(self, message: str, profile: str | None = None) -> None:
        self.profile = profile
        super().__init__(message)


class ProfileError(NisabaError):
    """Raised when a configuration profile cannot be switched to."""

    def __init__(self, message: str, profile: str | None = None) -> None:
        self.profile = profile
        super().__init__(message)


class CompletionError(NisabaError):
    """Base exception for completion endpoint failures.

    Each subclass carries the apology shown to the channel in place of a reply.
    """

    apology = "Something went wrong while I was thinking about that."


class RequestEncodingError(CompletionError):
    """Raised when the request payload cannot be encoded as JSON."""

    apology = "Error encoding request payload."


class ServiceUnavailableError(CompletionError):
    """Raised when the completion endpoint cannot be reached."""

    apology = "Error sending request."

    def __init__(self, message: str = "Completion service unavailable", url: str | None = None) -> None:
        self.url = url
        super().__init__(message)


class ServiceStatusError(CompletionError):
    """Raised when the completion endpoint answers with an error status."""

    apology = "The completion service returned an error."

    def __init__(self, message: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(message)


class ResponseDecodeError(CompletionError):
    """Raised when the response body is not valid JSON of the expected shape."""

    apology = "Error parsing response."

    def __init__(self, message: str, response: str | None = None) -> None:
        self.response = response
        super().__init__(message)


class ModelResponseError(CompletionError):
    """Raised when the response decodes but carries no reply content."""

    apology = "I have no answer for that."

    def __init__(self, message: str, response: str | None = None) -> None:
        self.response = response
        super().__init__(message)
