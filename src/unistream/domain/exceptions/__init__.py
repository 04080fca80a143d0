"""Domain exceptions.

Hey future me - this is the error TAXONOMY of the resolution engine. The old
client threw Error("VIP_REQUIRED") and compared message strings - never again!
Callers catch by TYPE:

- ProviderUnavailableError: network/timeout in a provider. Recovered locally,
  becomes an empty result. Never crosses the aggregation boundary.
- PaywallRequiredError: content exists but is access-gated. Always surfaced.
- ResolutionFailedError: no playable URL from any fallback. Surfaced, UI offers "skip".
- RelayUpstreamError: the wrapped media host rejected/dropped the relay.
- PluginFaultError: a user plugin threw or is malformed. Isolated to that plugin.
"""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing str(exception).
    # Always raise a specific subclass so callers can catch precisely!
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 422

    Example:
        raise ValidationError("Unknown source: SPOTIFY")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)
    """

    pass


class ProviderUnavailableError(DomainException):
    """A provider could not be reached (network error, timeout, bad payload).

    Only raised INSIDE provider adapters / clients. The aggregation engine turns
    it into an empty ProviderResult plus a log entry.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"[{provider}] {message}")
        self.provider = provider


class PaywallRequiredError(DomainException):
    """Content exists but needs a subscription (or only a trial preview is available).

    HTTP Status: 402

    Never retried automatically - the UI shows "VIP song, cannot play" instead
    of the generic "failed to load" message.
    """

    def __init__(self, source: str, song_id: str, reason: str = "subscription required") -> None:
        super().__init__(f"{source} song {song_id}: {reason}")
        self.source = source
        self.song_id = song_id
        self.reason = reason


class ResolutionFailedError(DomainException):
    """No playable URL could be produced by any fallback.

    HTTP Status: 404
    """

    def __init__(self, source: str, song_id: str, reason: str = "no playable url") -> None:
        super().__init__(f"{source} song {song_id}: {reason}")
        self.source = source
        self.song_id = song_id
        self.reason = reason


class PlaybackUnsupportedError(ResolutionFailedError):
    """The source has no way to play this song at all (capability gap).

    Example: a plugin that exports search() but no get_media_url().
    Subclass of ResolutionFailedError so "skip to next" handling still works.

    HTTP Status: 422
    """

    pass


class RelayUpstreamError(DomainException):
    """The relayed media host rejected or dropped the request.

    HTTP Status: 502 (only while headers were not sent yet!)
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PluginFaultError(DomainException):
    """Plugin code is malformed or raised while running.

    HTTP Status: 400 on install; swallowed (logged) during search.
    """

    def __init__(self, plugin_id: str, message: str) -> None:
        super().__init__(f"plugin {plugin_id}: {message}")
        self.plugin_id = plugin_id


__all__ = [
    "ConfigurationError",
    "DomainException",
    "PaywallRequiredError",
    "PlaybackUnsupportedError",
    "PluginFaultError",
    "ProviderUnavailableError",
    "RelayUpstreamError",
    "ResolutionFailedError",
    "ValidationError",
]
