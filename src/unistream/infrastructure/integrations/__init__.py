"""HTTP clients for external music sources plus the shared connection pools."""

from unistream.infrastructure.integrations.backend_client import BackendClient
from unistream.infrastructure.integrations.bilibili_client import BilibiliClient
from unistream.infrastructure.integrations.endpoint_pool import EndpointPool
from unistream.infrastructure.integrations.http_pool import HttpClientPool
from unistream.infrastructure.integrations.netease_client import NeteaseClient
from unistream.infrastructure.integrations.youtube_extractor import (
    ExtractedStream,
    YouTubeExtractor,
)
from unistream.infrastructure.integrations.youtube_mirror_client import YouTubeMirrorClient

__all__ = [
    "BackendClient",
    "BilibiliClient",
    "EndpointPool",
    "ExtractedStream",
    "HttpClientPool",
    "NeteaseClient",
    "YouTubeExtractor",
    "YouTubeMirrorClient",
]
