"""
Host rules: per-registry credentials and switches.

Rules are read-only to the datasource. A lookup merges every rule that
applies to a URL and hands back an immutable HostCredentials value, so
callers can build request headers without ever touching the rule itself.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HostCredentials:
    """Credentials and flags resolved for one host."""
    username: Optional[str] = None
    password: Optional[str] = None
    insecure_registry: bool = False

    @property
    def has_basic_auth(self) -> bool:
        return bool(self.username and self.password)


@dataclass
class HostRule:
    """A single host rule as configured by the user."""
    host_type: Optional[str] = None
    match_host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    insecure_registry: Optional[bool] = None
    enabled: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: dict) -> "HostRule":
        """Build a rule from its JSON form (camelCase keys)."""
        return cls(
            host_type=data.get("hostType"),
            match_host=data.get("matchHost"),
            username=data.get("username"),
            password=data.get("password"),
            insecure_registry=data.get("insecureRegistry"),
            enabled=data.get("enabled"),
        )

    def matches(self, host_type: str, url: str) -> bool:
        if self.host_type is not None and self.host_type != host_type:
            return False
        if self.match_host is None:
            return True
        if "://" in self.match_host:
            return url.startswith(self.match_host)
        hostname = httpx.URL(url).host
        return hostname == self.match_host or hostname.endswith("." + self.match_host)

    def specificity(self) -> tuple:
        return (
            self.match_host is not None,
            self.host_type is not None,
            len(self.match_host or ""),
        )


@dataclass
class HostRules:
    """Ordered collection of host rules."""
    rules: list[HostRule] = field(default_factory=list)

    def add(self, rule: HostRule) -> None:
        self.rules.append(rule)

    def _merged(self, host_type: str, url: str) -> dict:
        merged: dict = {}
        applicable = [r for r in self.rules if r.matches(host_type, url)]
        # stable sort keeps configuration order between equally specific rules
        for rule in sorted(applicable, key=HostRule.specificity):
            for name in ("username", "password", "insecure_registry", "enabled"):
                value = getattr(rule, name)
                if value is not None:
                    merged[name] = value
        return merged

    def find(self, host_type: str, url: str) -> HostCredentials:
        """
        Resolve credentials for a URL.

        Args:
            host_type: Datasource host type (e.g., "docker")
            url: Any URL on the target host

        Returns:
            HostCredentials, empty when no rule applies
        """
        merged = self._merged(host_type, url)
        return HostCredentials(
            username=merged.get("username"),
            password=merged.get("password"),
            insecure_registry=bool(merged.get("insecure_registry", False)),
        )

    def is_disabled(self, host_type: str, url: str) -> bool:
        return self._merged(host_type, url).get("enabled") is False


def load_host_rules(
    path: Optional[str] = None,
    dockerhub_identifier: Optional[str] = None,
    dockerhub_secret: Optional[str] = None,
) -> HostRules:
    """
    Load host rules from a JSON file plus optional Docker Hub credentials.

    Args:
        path: JSON file holding an array of rule objects (optional)
        dockerhub_identifier: Docker Hub username
        dockerhub_secret: Docker Hub password or access token

    Returns:
        HostRules

    Raises:
        ValueError: If the file does not hold a JSON array
    """
    host_rules = HostRules()

    if path:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Host rules file {path} must contain a JSON array")
        for entry in data:
            host_rules.add(HostRule.from_dict(entry))
        logger.debug("host_rules_loaded", path=path, count=len(data))

    if dockerhub_identifier and dockerhub_secret:
        host_rules.add(HostRule(
            match_host="docker.io",
            username=dockerhub_identifier,
            password=dockerhub_secret,
        ))

    return host_rules
