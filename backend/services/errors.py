"""
Errors raised by the request/response services.

Routes map these to HTTP responses:
- InvalidRequestError -> 400
- ProviderUnavailableError -> 503
- ServiceError (any other) -> 500
"""


class ServiceError(Exception):
    """Base class for service failures."""


class InvalidRequestError(ServiceError):
    """The caller supplied unusable input (unsupported voice, empty text...)."""


class ProviderUnavailableError(ServiceError):
    """No provider client is configured."""


class TranscriptionError(ServiceError):
    """Speech-to-text failed."""


class SpeechSynthesisError(ServiceError):
    """Text-to-speech failed."""
