"""
Error taxonomy for the live chat downloader.

Components raise these; the session controller turns them into error
notifications so nothing escapes the worker thread as a raw exception.
"""


class LiveChatError(Exception):
    """Base class for every failure the engine reports."""


class ConfigurationError(LiveChatError):
    """Missing credentials, no chat on the video, or the wrong mode requested."""


class TransportError(LiveChatError):
    """Non-success HTTP status, network failure, or an empty continuation body."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ProtocolError(LiveChatError):
    """Payload shape not recognized by the normalizer."""

    def __init__(self, message, context=None):
        super().__init__(message)
        self.context = context


def raise_for_status(response, message):
    """TransportError unless the response carries a 2xx status."""
    if not 200 <= response.status_code < 300:
        raise TransportError(f'{message} (HTTP {response.status_code})', response.status_code)
