"""
Custom exceptions for ToneScope.

Every failure in the playback and inference core maps onto one of these
classes. None of them is fatal to the process: the session layer catches
them and degrades to an idle-equivalent state.
"""

from typing import Optional, Any


class ToneScopeError(Exception):
    """Base exception for all ToneScope errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class InvalidInputTypeError(ToneScopeError):
    """Raised when a dropped file does not declare an audio MIME type."""

    def __init__(self, message: str, mime_type: Optional[str] = None):
        super().__init__(message, details={"mime_type": mime_type})
        self.mime_type = mime_type


class FileTooLargeError(ToneScopeError):
    """Raised when an ingested file exceeds the configured size limit."""

    def __init__(
        self,
        message: str,
        file_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        super().__init__(message)
        self.file_size = file_size
        self.max_size = max_size
        self.details = {"file_size": file_size, "max_size": max_size}


class MediaResourceError(ToneScopeError):
    """Raised when a playable handle cannot be acquired."""

    def __init__(self, message: str, file_name: Optional[str] = None):
        super().__init__(message, details={"file_name": file_name})
        self.file_name = file_name


class PlaybackUnavailableError(ToneScopeError):
    """Raised when the media handle fails to start playback."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, details={"url": url})
        self.url = url


class PlaybackStateError(ToneScopeError):
    """Raised on an illegal playback state transition."""

    def __init__(self, message: str, from_phase: Optional[str] = None, to_phase: Optional[str] = None):
        super().__init__(message)
        self.from_phase = from_phase
        self.to_phase = to_phase
        self.details = {"from_phase": from_phase, "to_phase": to_phase}


class AnalysisError(ToneScopeError):
    """Raised when emotion inference fails."""

    def __init__(
        self,
        message: str,
        classifier_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.classifier_name = classifier_name
        self.original_error = original_error
        self.details = {
            "classifier_name": classifier_name,
            "original_error": str(original_error) if original_error else None,
        }


class ConfigurationError(ToneScopeError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}
