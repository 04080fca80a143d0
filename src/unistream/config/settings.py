"""Application settings.

Hey future me - every knob lives here! Values come from (in order of priority):
1. Constructor kwargs (tests do Settings(search={...}))
2. Environment variables with UNISTREAM_ prefix, nested via "__"
   e.g. UNISTREAM_BACKEND__RELAY_URL=http://nas:3001/api
3. .env file in the working directory
4. The defaults below

Runtime changes (backend URL, custom mirror, timeouts) do NOT write back here!
They go through MusicService.configure() and only live for the process.
"""

from functools import lru_cache

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class NeteaseSettings(BaseModel):
    """NetEase Cloud Music API settings."""

    base_url: str = "https://music.163.com"
    app_version: str = "2.9.7"
    search_limit: int = Field(default=20, ge=1, le=100)
    request_timeout: float = 15.0
    # Hey future me - the source geofences by client IP. These forwarded-for headers
    # make the API believe we sit on a mainland IP. Empty string disables them.
    forwarded_ip: str = "115.239.211.112"


class BilibiliSettings(BaseModel):
    """Bilibili API settings."""

    api_base_url: str = "https://api.bilibili.com"
    referer: str = "https://www.bilibili.com/"
    request_timeout: float = 15.0


class MirrorSettings(BaseModel):
    """Piped / Invidious mirror pools for YouTube audio."""

    piped_instances: list[str] = Field(
        default_factory=lambda: [
            "https://pipedapi.kavin.rocks",
            "https://api.piped.otter.sh",
            "https://pipedapi.drgns.space",
            "https://piped-api.lunar.icu",
        ]
    )
    invidious_instances: list[str] = Field(
        default_factory=lambda: [
            "https://inv.tux.pizza",
            "https://vid.uff.net",
            "https://inv.nadeko.net",
            "https://invidious.jing.rocks",
            "https://yt.artemislena.eu",
        ]
    )
    custom_invidious_url: str = ""
    mirror_timeout: float = 4.0
    result_limit: int = Field(default=5, ge=1, le=50)

    @field_validator("piped_instances", "invidious_instances")
    @classmethod
    def _strip_trailing_slashes(cls, value: list[str]) -> list[str]:
        return [v.rstrip("/") for v in value if v.strip()]


class BackendSettings(BaseModel):
    """Operator-run relay backend (another UniStream instance, usually)."""

    relay_url: str = ""
    timeout: float = 8.0
    resolve_timeout: float = 10.0


class SearchSettings(BaseModel):
    """Aggregation engine budgets.

    Hey future me - these are PER PROVIDER budgets, not one global timeout!
    Fast sources get ~5s, mirror-dependent sources ~8s. A provider blowing its
    budget counts as "no results", never as an aggregation failure.
    """

    provider_timeouts_ms: dict[str, int] = Field(
        default_factory=lambda: {
            "NETEASE": 5000,
            "BILIBILI": 5000,
            "YOUTUBE": 8000,
            "PLUGIN": 8000,
        }
    )
    default_timeout_ms: int = 8000


class ObservabilitySettings(BaseModel):
    """Logging and tracing settings."""

    log_json_format: bool = False
    enable_tracing: bool = False
    otlp_endpoint: str | None = None
    enable_console_exporter: bool = False


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="UNISTREAM_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "unistream"
    app_env: str = "development"
    log_level: str = "INFO"
    host: str = "0.0.0.0"  # nosec B104 - LAN service by default
    port: int = 3001

    # Prefix for relay URLs handed to players, e.g. "http://192.168.1.5:3001".
    # Empty means relative URLs ("/api/relay?...").
    public_base_url: str = ""
    # yt-dlp extraction on this host (the "privileged" path a client cannot run)
    enable_server_extraction: bool = True

    user_agent: str = DESKTOP_USER_AGENT
    probe_timeout: float = 5.0

    netease: NeteaseSettings = Field(default_factory=NeteaseSettings)
    bilibili: BilibiliSettings = Field(default_factory=BilibiliSettings)
    mirrors: MirrorSettings = Field(default_factory=MirrorSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("public_base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached)."""
    return Settings()
