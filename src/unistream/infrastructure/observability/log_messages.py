"""Structured log message templates for consistent, human-readable logging.

Hey future me - instead of "Error: All connection attempts failed" we log:

    ⚠️ Provider Search Failed
    ├─ Provider: YOUTUBE
    ├─ Query: 周杰伦
    ├─ Reason: timed out after 8000ms
    └─ 💡 Mirrors are flaky by nature, check /api/diagnostics

Usage:
    from unistream.infrastructure.observability.log_messages import LogMessages

    logger.warning(LogMessages.provider_failed(provider="YOUTUBE", query=q, error="..."))
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class LogTemplate:
    """A reusable log message template with placeholders."""

    icon: str
    title: str
    fields: dict[str, str]
    hint: str | None = None

    def format(self, **kwargs: Any) -> str:
        """Format the template with provided values.

        Args:
            **kwargs: Values to fill into template placeholders

        Returns:
            Formatted multi-line log message with icon, title, fields, and optional hint
        """
        lines = [f"{self.icon} {self.title}"]

        field_items = list(self.fields.items())
        for i, (key, value_template) in enumerate(field_items):
            prefix = "└─" if i == len(field_items) - 1 and not self.hint else "├─"
            try:
                value = value_template.format(**kwargs)
            except KeyError as e:
                value = f"<missing: {e}>"
            lines.append(f"{prefix} {key}: {value}")

        if self.hint:
            try:
                hint_text = self.hint.format(**kwargs)
            except KeyError as e:
                hint_text = f"<missing: {e}>"
            lines.append(f"└─ 💡 {hint_text}")

        return "\n".join(lines)


class LogMessages:
    """Collection of standardized log message templates."""

    @staticmethod
    def connection_failed(
        service: str,
        target: str,
        error: str | None = None,
        hint: str | None = None,
    ) -> str:
        """Format a connection failure message.

        Args:
            service: Service name (e.g., "NetEase", "Piped")
            target: Connection target (URL)
            error: Error message from exception
            hint: Custom troubleshooting hint

        Returns:
            Formatted log message
        """
        fields = {"Target": "{target}"}
        if error:
            fields["Reason"] = "{error}"
        return LogTemplate(
            icon="🔴",
            title=f"{service} Connection Failed",
            fields=fields,
            hint=hint,
        ).format(target=target, error=error)

    @staticmethod
    def provider_failed(
        provider: str,
        query: str,
        error: str,
        hint: str | None = None,
    ) -> str:
        """A provider branch produced no results because it failed."""
        return LogTemplate(
            icon="⚠️",
            title="Provider Search Failed",
            fields={"Provider": "{provider}", "Query": "{query}", "Reason": "{error}"},
            hint=hint or "Provider errors never fail the whole search, check /api/diagnostics",
        ).format(provider=provider, query=query, error=error)

    @staticmethod
    def mirror_rotated(pool: str, failed: str, next_endpoint: str, error: str) -> str:
        """A mirror failed and the pool pointer moved on."""
        return LogTemplate(
            icon="🔁",
            title="Mirror Rotated",
            fields={
                "Pool": "{pool}",
                "Failed": "{failed}",
                "Next": "{next_endpoint}",
                "Reason": "{error}",
            },
        ).format(pool=pool, failed=failed, next_endpoint=next_endpoint, error=error)

    @staticmethod
    def resolution_failed(source: str, song_id: str, reason: str) -> str:
        """No fallback step produced a playable url."""
        return LogTemplate(
            icon="🔴",
            title="Resolution Failed",
            fields={"Source": "{source}", "Song": "{song_id}", "Reason": "{reason}"},
            hint="Caller should reset now-playing state and offer skip",
        ).format(source=source, song_id=song_id, reason=reason)

    @staticmethod
    def plugin_fault(plugin_id: str, operation: str, error: str) -> str:
        """User plugin code misbehaved."""
        return LogTemplate(
            icon="🧩",
            title="Plugin Fault",
            fields={"Plugin": "{plugin_id}", "Operation": "{operation}", "Reason": "{error}"},
            hint="Fault is isolated to this plugin, reinstall or remove it",
        ).format(plugin_id=plugin_id, operation=operation, error=error)

    @staticmethod
    def relay_failed(target: str, error: str, headers_sent: bool) -> str:
        """Upstream of the byte relay broke."""
        return LogTemplate(
            icon="📡",
            title="Relay Upstream Error",
            fields={
                "Target": "{target}",
                "Reason": "{error}",
                "Headers sent": "{headers_sent}",
            },
        ).format(target=target, error=error, headers_sent=headers_sent)
