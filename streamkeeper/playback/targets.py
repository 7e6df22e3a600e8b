"""
Stream targets and target validation.

A target is validated at every load attempt, retries included, so a retry
never replays a stale validation result.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """An immutable stream address plus the identity used for channel lookups."""

    id: str
    uri: str
    name: str = ""
    is_default: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def to_dict(self) -> dict[str, Any]:
        # The URI is deliberately left out; stream URLs may carry tokens
        return {
            "id": self.id,
            "name": self.display_name,
            "is_default": self.is_default,
        }


class TargetValidator:
    """
    Scheme and domain allow-list for stream URIs.

    An empty domain list accepts any host.
    """

    def __init__(
        self,
        allowed_schemes: Iterable[str] = ("https",),
        allowed_domains: Iterable[str] = (),
    ):
        self.allowed_schemes = frozenset(s.lower() for s in allowed_schemes)
        self.allowed_domains = tuple(d.lower().lstrip(".") for d in allowed_domains)

    @classmethod
    def from_config(cls, security_config: Any) -> "TargetValidator":
        return cls(
            allowed_schemes=security_config.allowed_schemes,
            allowed_domains=security_config.allowed_domains,
        )

    def is_valid(self, uri: Optional[str]) -> bool:
        """
        Validate that a stream URI is safe to load.

        Never raises; malformed input is simply invalid. The URI itself is
        never logged.
        """
        if not uri or not isinstance(uri, str):
            logger.warning("URL validation failed: empty URL")
            return False

        try:
            parts = urlsplit(uri)
            scheme = parts.scheme.lower()
            host = (parts.hostname or "").lower()
        except ValueError:
            logger.warning("URL validation failed: malformed URL")
            return False

        if scheme not in self.allowed_schemes:
            logger.warning(f"URL validation failed: scheme '{scheme}' not allowed")
            return False

        if not host:
            logger.warning("URL validation failed: missing host")
            return False

        if self.allowed_domains and not any(
            host == domain or host.endswith(f".{domain}")
            for domain in self.allowed_domains
        ):
            logger.warning("URL validation failed: domain not whitelisted")
            return False

        return True
