"""Value objects shared by every layer.

Hey future me - enums are `str, Enum` so they serialize straight into JSON and
query strings ("NETEASE", "standard") without custom encoders.
"""

from enum import Enum

from unistream.domain.exceptions import ValidationError


class MusicSource(str, Enum):
    """Where a song comes from. Song ids are only unique WITHIN one source!"""

    NETEASE = "NETEASE"
    YOUTUBE = "YOUTUBE"
    BILIBILI = "BILIBILI"
    LOCAL = "LOCAL"
    PLUGIN = "PLUGIN"

    @classmethod
    def parse(cls, value: str) -> "MusicSource":
        """Parse a source name case-insensitively.

        Raises:
            ValidationError: If the value names no known source
        """
        try:
            return cls(value.strip().upper())
        except ValueError as e:
            raise ValidationError(f"Unknown source: {value}") from e


class FeeTier(str, Enum):
    """Access tier of a song as reported by its source."""

    FREE = "free"
    SUBSCRIPTION = "subscription"
    PREMIUM_LOSSLESS = "premium_lossless"


class AudioQuality(str, Enum):
    """Caller-requested playback tier.

    Each tier maps to a bitrate CEILING - the source negotiates down from it
    when the account may not have that quality.
    """

    STANDARD = "standard"
    EXHIGH = "exhigh"
    LOSSLESS = "lossless"

    @property
    def bitrate(self) -> int:
        """Target bitrate ceiling in bits per second."""
        return _BITRATES[self]

    def with_lower_tiers(self) -> list["AudioQuality"]:
        """This tier followed by every lower tier, best first."""
        order = [AudioQuality.LOSSLESS, AudioQuality.EXHIGH, AudioQuality.STANDARD]
        return order[order.index(self) :]

    @classmethod
    def parse(cls, value: str | None) -> "AudioQuality":
        """Parse a quality hint, defaulting to STANDARD for empty input."""
        if not value:
            return cls.STANDARD
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise ValidationError(f"Unknown quality: {value}") from e


_BITRATES = {
    AudioQuality.STANDARD: 128000,
    AudioQuality.EXHIGH: 320000,
    AudioQuality.LOSSLESS: 999000,
}


class ProbeStatus(str, Enum):
    """Outcome of one diagnostics probe."""

    OK = "ok"
    ERROR = "error"
    SKIPPED = "skipped"


__all__ = [
    "AudioQuality",
    "FeeTier",
    "MusicSource",
    "ProbeStatus",
]
