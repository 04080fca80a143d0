"""Load user plugins from Python source text.

Hey future me - a plugin is just a Python file someone pasted or hosts somewhere:

    platform = "kugou"          # or id = ..., or name = ...
    version = "1.2"
    author = "someone"

    async def search(query): return [{"id": "1", "title": "...", "artist": "..."}]
    def get_media_url(song): return "https://..."

...or the same names as attributes of a module-level `plugin` object/dict.

TRUST MODEL: the code runs in-process with full privileges, exactly like the
original client evaluated plugin JavaScript. The module object is isolated (never
registered in sys.modules, own globals) but that is NOT a sandbox. Only install
plugins you would also run as a script.
"""

import asyncio
import inspect
import itertools
import logging
import time
import types
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from unistream.domain.dtos import PluginInfo, Song, song_from_mapping, song_to_mapping
from unistream.domain.exceptions import PluginFaultError
from unistream.domain.value_objects import MusicSource

logger = logging.getLogger(__name__)

_module_counter = itertools.count(1)


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    """Await async plugin callables, push sync ones to a worker thread."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    result = await asyncio.to_thread(func, *args)
    if inspect.isawaitable(result):
        return await result
    return result


class PluginHandle:
    """Capability object wrapping one loaded plugin."""

    def __init__(
        self,
        plugin_id: str,
        name: str,
        version: str = "1.0",
        author: str = "Unknown",
        search: Callable[..., Any] | None = None,
        get_media_url: Callable[..., Any] | None = None,
        src_url: str | None = None,
    ) -> None:
        self.id = plugin_id
        self.name = name
        self.version = version
        self.author = author
        self.src_url = src_url
        self._search = search
        self._get_media_url = get_media_url

    @property
    def can_search(self) -> bool:
        return self._search is not None

    @property
    def can_resolve(self) -> bool:
        return self._get_media_url is not None

    def info(self) -> PluginInfo:
        return PluginInfo(
            id=self.id,
            name=self.name,
            version=self.version,
            author=self.author,
            src_url=self.src_url,
            can_search=self.can_search,
            can_resolve=self.can_resolve,
        )

    async def search(self, query: str) -> list[Song]:
        """Run the plugin's search and map its items to Songs.

        Raises:
            PluginFaultError: The plugin raised or returned something that is not a list
        """
        if self._search is None:
            return []
        try:
            raw = await _call(self._search, query)
        except Exception as e:
            raise PluginFaultError(self.id, f"search raised {type(e).__name__}: {e}") from e

        if raw is None:
            return []
        if not isinstance(raw, list | tuple):
            raise PluginFaultError(self.id, f"search returned {type(raw).__name__}, expected list")

        songs: list[Song] = []
        try:
            for item in raw:
                if not isinstance(item, dict) or item.get("id") in (None, ""):
                    # nothing we could ever resolve or dedupe
                    continue
                song = song_from_mapping(item, MusicSource.PLUGIN)
                songs.append(replace(song, source=MusicSource.PLUGIN, plugin_id=self.id))
        except Exception as e:
            raise PluginFaultError(self.id, f"search returned an unusable item: {type(e).__name__}: {e}") from e
        return songs

    async def get_media_url(self, song: Song) -> str | None:
        """Ask the plugin for a playable URL (None when it has no answer).

        Raises:
            PluginFaultError: The plugin raised
        """
        if self._get_media_url is None:
            return None
        try:
            url = await _call(self._get_media_url, song_to_mapping(song))
        except Exception as e:
            raise PluginFaultError(self.id, f"get_media_url raised {type(e).__name__}: {e}") from e
        return url if isinstance(url, str) and url else None


def _exports_of(module: types.ModuleType) -> Callable[[str], Any]:
    """Attribute getter over the plugin's exports (module or `plugin` object)."""
    target: Any = getattr(module, "plugin", None)
    if target is None:
        target = module
    if isinstance(target, dict):
        return target.get
    return lambda attr: getattr(target, attr, None)


def load_plugin(source_code: str, src_url: str | None = None) -> PluginHandle:
    """Execute plugin source in a fresh module and wrap its exports.

    Args:
        source_code: Python source text
        src_url: Where the source came from (shown in the plugin list)

    Returns:
        PluginHandle for the registry

    Raises:
        PluginFaultError: Source does not compile, raises on import, or exports
            neither an identity nor a search capability
    """
    label = src_url or "<pasted plugin>"
    module = types.ModuleType(f"unistream_plugin_{next(_module_counter)}")
    module.__file__ = label

    try:
        code = compile(source_code, label, "exec")
        exec(code, module.__dict__)  # nosec B102 - plugins are trusted code, see module docstring
    except SyntaxError as e:
        raise PluginFaultError(label, f"syntax error: {e}") from e
    except Exception as e:
        raise PluginFaultError(label, f"import raised {type(e).__name__}: {e}") from e

    export = _exports_of(module)
    search = export("search")
    get_media_url = export("get_media_url") or export("getMediaUrl")
    platform = export("platform")
    explicit_id = export("id")
    name = export("name")

    if search is not None and not callable(search):
        raise PluginFaultError(label, "search is not callable")
    if get_media_url is not None and not callable(get_media_url):
        raise PluginFaultError(label, "get_media_url is not callable")
    if not (platform or explicit_id or search):
        raise PluginFaultError(label, "plugin exports neither platform/id nor search")

    plugin_id = str(platform or explicit_id or name or f"plugin-{int(time.time() * 1000)}")
    return PluginHandle(
        plugin_id=plugin_id,
        name=str(name or plugin_id),
        version=str(export("version") or "1.0"),
        author=str(export("author") or "Unknown"),
        search=search,
        get_media_url=get_media_url,
        src_url=src_url,
    )
