"""Mutable runtime options of one service context.

Hey future me - Settings is the immutable startup config. Whatever the operator
changes while the process runs (PUT /api/settings -> MusicService.configure())
lands HERE, and adapters read it at call time. Nothing is written back to
Settings or to disk.
"""

from dataclasses import dataclass, field

from unistream.config.settings import Settings


@dataclass
class RuntimeConfig:
    """Operator-tunable values, read on every call."""

    backend_relay_url: str = ""
    custom_mirror_url: str = ""
    provider_timeouts_ms: dict[str, int] = field(default_factory=dict)
    default_timeout_ms: int = 8000

    @classmethod
    def from_settings(cls, settings: Settings) -> "RuntimeConfig":
        return cls(
            backend_relay_url=settings.backend.relay_url.rstrip("/"),
            custom_mirror_url=settings.mirrors.custom_invidious_url.rstrip("/"),
            provider_timeouts_ms=dict(settings.search.provider_timeouts_ms),
            default_timeout_ms=settings.search.default_timeout_ms,
        )

    def timeout_for(self, source_name: str) -> float:
        """Budget in SECONDS for a provider source ("NETEASE", "PLUGIN", ...)."""
        millis = self.provider_timeouts_ms.get(source_name.upper(), self.default_timeout_ms)
        return max(millis, 0) / 1000
