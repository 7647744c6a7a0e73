"""Request filtering applied to every request the session's page makes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable
from urllib.parse import urlsplit

from .config import DEFAULT_BLOCKED_DOMAINS, DEFAULT_BLOCKED_RESOURCE_TYPES, Settings


class RouteDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class RequestDescriptor:
    """The parts of an outgoing request the policy looks at."""

    url: str
    resource_type: str

    @property
    def hostname(self) -> str:
        return (urlsplit(self.url).hostname or "").lower()


@dataclass(frozen=True)
class NetworkPolicy:
    """Deny heavy resources and tracking hosts, allow everything else."""

    blocked_domains: tuple[str, ...] = tuple(DEFAULT_BLOCKED_DOMAINS)
    blocked_resource_types: frozenset[str] = frozenset(DEFAULT_BLOCKED_RESOURCE_TYPES)

    @classmethod
    def from_lists(cls, domains: Iterable[str], resource_types: Iterable[str]) -> "NetworkPolicy":
        return cls(
            blocked_domains=tuple(domain.strip().lower() for domain in domains if domain.strip()),
            blocked_resource_types=frozenset(kind.strip().lower() for kind in resource_types if kind.strip()),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "NetworkPolicy":
        return cls.from_lists(settings.blocked_domains, settings.blocked_resource_types)

    def decide(self, request: RequestDescriptor) -> RouteDecision:
        """Return the routing decision for a single request."""
        if request.resource_type.lower() in self.blocked_resource_types:
            return RouteDecision.DENY

        hostname = request.hostname
        if hostname and any(domain in hostname for domain in self.blocked_domains):
            return RouteDecision.DENY

        return RouteDecision.ALLOW
