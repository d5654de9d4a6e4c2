"""URL permission policy.

Decides whether a normalized URL may ever enter the frontier:
- Host policy map short-circuits path evaluation
- Ordered path patterns where the first explicit allow wins
"""

import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from .url_tools import url_host, url_path

logger = logging.getLogger(__name__)


class PermissionEngine:
    """Side-effect-free host/path permission evaluation.

    Regexes are compiled once at construction; decisions are recomputed for
    every URL.
    """

    def __init__(
        self,
        hosts: Dict[str, Optional[bool]],
        path_patterns: List[Tuple[str, Optional[bool]]],
    ):
        """Initialize permission engine.

        Args:
            hosts: host -> True (allow), False (deny) or None (use path rules)
            path_patterns: ordered (regex, policy) pairs
        """
        self.hosts = {host.lower(): policy for host, policy in hosts.items()}
        self.path_patterns: List[Tuple[Pattern, Optional[bool]]] = [
            (re.compile(pattern), policy) for pattern, policy in path_patterns
        ]

        logger.info(
            f"Permission engine initialized: "
            f"{len(self.hosts)} host policies, "
            f"{len(self.path_patterns)} path patterns"
        )

    @classmethod
    def from_config(cls, config) -> 'PermissionEngine':
        return cls(config.hosts, config.path_patterns)

    def permitted(self, url: str) -> bool:
        return self.explain(url)[0]

    def explain(self, url: str) -> Tuple[bool, str]:
        """Return the decision and what decided it.

        The second element is "host", "path:<pattern>" for the allow that won,
        or "default" when no allow matched.
        """
        host = url_host(url)
        if host is not None:
            host_policy = self.hosts.get(host)
            if host_policy is not None:
                logger.debug(f"permitted: {host_policy} (host {host}) {url}")
                return host_policy, "host"

        path = url_path(url)
        decision, source = self._permitted_path(path)
        logger.debug(f"permitted: {decision} ({source}) {url}")
        return decision, source

    def _permitted_path(self, path: str) -> Tuple[bool, str]:
        permit = False
        source = "default"
        for pattern, policy in self.path_patterns:
            if not pattern.search(path):
                continue
            logger.debug(f"{pattern.pattern} matches {path}")
            # an allow is never revoked by a later deny
            if policy is True and not permit:
                permit = True
                source = f"path:{pattern.pattern}"
        return permit, source
