"""Ports (interfaces) implemented by the infrastructure layer."""

from unistream.domain.ports.provider import IProviderAdapter

__all__ = ["IProviderAdapter"]
