"""Server-side YouTube audio extraction with yt-dlp.

Hey future me - this is the "privileged" path a browser/mobile client cannot run:
yt-dlp deciphers the signed stream URL on THIS host. yt-dlp is blocking, so the
extraction runs in a worker thread (asyncio.to_thread) and never stalls the loop.
The extracted googlevideo URL is bound to this host's IP, which is why /api/yt/play
relays it instead of redirecting the player to it.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError, ExtractorError

from unistream.domain.exceptions import ProviderUnavailableError

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


@dataclass
class ExtractedStream:
    """A direct audio stream URL plus the headers yt-dlp says it needs."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    mime_type: str | None = None


class YouTubeExtractor:
    """Resolve a video id to its best audio-only stream."""

    def __init__(self, socket_timeout: int = 10, cache_ttl: float = 600.0, cache_size: int = 256) -> None:
        # video_id -> (stream, expires_at), oldest insert first. Resolve verifies a stream
        # and /yt/play streams it moments later, one extraction should serve both.
        self._cache: dict[str, tuple[ExtractedStream, float]] = {}
        self._cache_ttl = cache_ttl
        self._cache_size = max(cache_size, 1)
        self._opts: dict[str, Any] = {
            "skip_download": True,
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "cachedir": False,
            "format": "bestaudio[ext=m4a]/bestaudio/best",
            "socket_timeout": socket_timeout,
        }

    def _extract_sync(self, video_id: str) -> ExtractedStream:
        with YoutubeDL(self._opts) as ydl:
            info = ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)

        if not isinstance(info, dict):
            raise ProviderUnavailableError("yt-dlp", f"no info for {video_id}")

        url = info.get("url")
        headers = info.get("http_headers") or {}
        ext = info.get("ext")
        if not url:
            # format selection did not flatten, pick the requested format by hand
            for fmt in info.get("requested_formats") or []:
                if isinstance(fmt, dict) and fmt.get("url"):
                    url = fmt["url"]
                    headers = fmt.get("http_headers") or headers
                    ext = fmt.get("ext") or ext
                    break
        if not url:
            raise ProviderUnavailableError("yt-dlp", f"no audio stream for {video_id}")

        mime_type = f"audio/{'mp4' if ext == 'm4a' else ext}" if ext else None
        return ExtractedStream(url=str(url), headers=dict(headers), mime_type=mime_type)

    async def extract_audio(self, video_id: str) -> ExtractedStream:
        """Extract the audio stream of `video_id` off the event loop.

        Raises:
            ProviderUnavailableError: yt-dlp could not extract a stream
        """
        cached = self._cache.get(video_id)
        if cached is not None and cached[1] > time.monotonic():
            return cached[0]

        try:
            stream = await asyncio.to_thread(self._extract_sync, video_id)
        except (DownloadError, ExtractorError) as e:
            logger.warning(f"yt-dlp extraction failed for {video_id}: {e}")
            raise ProviderUnavailableError("yt-dlp", str(e)) from e

        self._remember(video_id, stream)
        return stream

    def _remember(self, video_id: str, stream: ExtractedStream) -> None:
        now = time.monotonic()
        for key in [k for k, (_, expires_at) in self._cache.items() if expires_at <= now]:
            del self._cache[key]
        self._cache.pop(video_id, None)
        while len(self._cache) >= self._cache_size:
            del self._cache[next(iter(self._cache))]
        self._cache[video_id] = (stream, now + self._cache_ttl)

    def forget(self, video_id: str) -> None:
        """Drop a cached stream (e.g. after the relay got a 403 for it)."""
        self._cache.pop(video_id, None)
