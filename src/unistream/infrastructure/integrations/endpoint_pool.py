"""Rotating pools of equivalent mirror endpoints.

Hey future me - public Piped/Invidious mirrors come and go by the hour. Each pool
keeps a "preferred" pointer:

- pick()    -> operator override if set, else the preferred entry
- promote() -> after a success, that entry becomes preferred
- rotate()  -> after a failure, move on round-robin (wraps at the end)

The initial pointer is RANDOM so a fleet of fresh processes does not hammer
mirror #0. Pointer updates are last-write-wins. Two concurrent requests may
promote different entries and that is fine, both were healthy a moment ago.
No lock: everything runs on one event loop and a pointer write is
a single assignment.
"""

import logging
import random
from collections.abc import Iterable

from unistream.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class EndpointPool:
    """An ordered list of base URLs with a preferred pointer and an override."""

    def __init__(
        self,
        name: str,
        endpoints: Iterable[str],
        override: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Create a pool.

        Args:
            name: Pool name for logs ("piped", "invidious")
            endpoints: Non-empty list of base URLs (trailing slashes are stripped)
            override: Operator-supplied endpoint that always wins while set
            rng: Random source for the initial pointer (tests pass a seeded one)

        Raises:
            ConfigurationError: If the endpoint list is empty
        """
        cleaned = [e.strip().rstrip("/") for e in endpoints if e and e.strip()]
        if not cleaned:
            raise ConfigurationError(f"Endpoint pool '{name}' needs at least one endpoint")
        self.name = name
        self._endpoints = cleaned
        self._preferred = (rng or random).randrange(len(cleaned))
        self._override: str | None = None
        self.set_override(override)

    @property
    def endpoints(self) -> list[str]:
        return list(self._endpoints)

    @property
    def preferred(self) -> str:
        return self._endpoints[self._preferred]

    @property
    def override(self) -> str | None:
        return self._override

    def set_override(self, value: str | None) -> None:
        """Set or clear ("" / None) the operator override."""
        value = (value or "").strip().rstrip("/")
        self._override = value or None

    def pick(self) -> str:
        """Endpoint to use for the next attempt."""
        return self._override or self._endpoints[self._preferred]

    def promote(self, endpoint: str) -> None:
        """Make `endpoint` the preferred entry (no-op for unknown/override URLs)."""
        try:
            self._preferred = self._endpoints.index(endpoint.rstrip("/"))
        except ValueError:
            return

    def rotate(self) -> str:
        """Advance the preferred pointer round-robin and return the new entry."""
        self._preferred = (self._preferred + 1) % len(self._endpoints)
        return self._endpoints[self._preferred]

    def candidates(self) -> list[str]:
        """Attempt order: override (if set), then every pool entry from the preferred one on."""
        start = self._preferred
        ordered = self._endpoints[start:] + self._endpoints[:start]
        if self._override:
            return [self._override] + [e for e in ordered if e != self._override]
        return ordered
