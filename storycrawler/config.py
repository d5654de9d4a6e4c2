from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging
import re

import yaml

from .errors import ConfigError


_POLICY_WORDS = {
    "allow": True,
    "deny": False,
    "unset": None,
}


def parse_policy(value: Any, where: str) -> Optional[bool]:
    """Map a YAML policy value (bool, null, allow/deny/unset) to Optional[bool]."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _POLICY_WORDS:
        return _POLICY_WORDS[value.strip().lower()]
    raise ConfigError(f"{where}: policy must be true, false, null, allow, deny or unset (got {value!r})")


@dataclass
class ParseRule:
    name: str
    class_: str

    def __post_init__(self):
        if not self.name:
            raise ConfigError("rules: tag name cannot be empty")
        if not self.class_:
            raise ConfigError(f"rules: class cannot be empty for <{self.name}>")

    @classmethod
    def from_dict(cls, data: Any) -> 'ParseRule':
        if not isinstance(data, dict):
            raise ConfigError("rules entries must be mappings with 'name' and 'class'")
        return cls(name=str(data.get('name', '')), class_=str(data.get('class', '')))


@dataclass
class ParseRules:
    author: List[ParseRule] = field(default_factory=list)
    story: List[ParseRule] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ParseRules':
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Section 'rules' must be a mapping.")
        return cls(
            author=[ParseRule.from_dict(r) for r in data.get('author') or []],
            story=[ParseRule.from_dict(r) for r in data.get('story') or []],
        )


@dataclass
class FetchConfig:
    timeout_sec: Optional[float] = None
    follow_redirects: bool = True
    http2: bool = False

    def __post_init__(self):
        if self.timeout_sec is not None and self.timeout_sec <= 0:
            raise ConfigError("fetch.timeout_sec must be > 0 or null")


@dataclass
class DedupConfig:
    strategy: str = "hashed"

    def __post_init__(self):
        if self.strategy not in {"exact", "hashed"}:
            raise ConfigError("dedup.strategy must be one of: exact, hashed")


@dataclass
class ArchiveConfig:
    root: str = "archive"

    def __post_init__(self):
        if not self.root:
            raise ConfigError("archive.root cannot be empty")


@dataclass
class LogsConfig:
    log_file: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self):
        if not isinstance(getattr(logging, self.log_level.upper(), None), int):
            raise ConfigError(f"logs.log_level is not a logging level: {self.log_level}")


@dataclass
class CrawlConfig:
    workers: int = 4
    seeds: List[str] = field(default_factory=list)
    user_agent: str = "storycrawler/0.1"
    idle_sleep_sec: float = 0.05
    rules: ParseRules = field(default_factory=ParseRules)
    # host -> True (allow), False (deny), None (fall through to path rules)
    hosts: Dict[str, Optional[bool]] = field(default_factory=dict)
    # order-significant (regex, policy) pairs
    path_patterns: List[Tuple[str, Optional[bool]]] = field(default_factory=list)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    logs: LogsConfig = field(default_factory=LogsConfig)

    def __post_init__(self):
        if self.workers < 1:
            raise ConfigError("workers must be >= 1")
        if self.idle_sleep_sec < 0:
            raise ConfigError("idle_sleep_sec must be >= 0")
        self.seeds = [seed.strip() for seed in self.seeds if seed and seed.strip()]
        for pattern, _policy in self.path_patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"path_patterns: invalid regex {pattern!r}: {e}") from e

    def get_archive_path(self) -> Path:
        return Path(self.archive.root).resolve()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CrawlConfig':
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping.")

        seeds = data.get('seeds', []) or []
        if not isinstance(seeds, list):
            raise ConfigError("seeds must be a list in the configuration file")

        hosts = data.get('hosts', {}) or {}
        if not isinstance(hosts, dict):
            raise ConfigError("Section 'hosts' must be a mapping.")

        try:
            return cls(
                workers=int(data.get('workers', data.get('threads', 4))),
                seeds=[str(s) for s in seeds],
                user_agent=data.get('user_agent', 'storycrawler/0.1'),
                idle_sleep_sec=float(data.get('idle_sleep_sec', 0.05)),
                rules=ParseRules.from_dict(data.get('rules')),
                hosts={
                    str(host).lower(): parse_policy(policy, f"hosts.{host}")
                    for host, policy in hosts.items()
                },
                path_patterns=_parse_path_patterns(data.get('path_patterns')),
                fetch=FetchConfig(**_section(data, 'fetch')),
                dedup=DedupConfig(**_section(data, 'dedup')),
                archive=ArchiveConfig(**_section(data, 'archive')),
                logs=LogsConfig(**_section(data, 'logs')),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_yaml(cls, config_path: str) -> 'CrawlConfig':
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with path.open('r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {path}: {e}") from e

        return cls.from_dict(data)


def _section(config: Dict[str, Any], section: str) -> Dict[str, Any]:
    value = config.get(section, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{section}' must be a mapping.")
    return value


def _parse_path_patterns(value: Any) -> List[Tuple[str, Optional[bool]]]:
    """Accept an ordered mapping {regex: policy} or a list of {pattern, policy}."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [
            (str(pattern), parse_policy(policy, f"path_patterns.{pattern}"))
            for pattern, policy in value.items()
        ]
    if isinstance(value, list):
        patterns = []
        for entry in value:
            if not isinstance(entry, dict) or 'pattern' not in entry:
                raise ConfigError("path_patterns list entries need a 'pattern' key")
            pattern = str(entry['pattern'])
            patterns.append((pattern, parse_policy(entry.get('policy'), f"path_patterns.{pattern}")))
        return patterns
    raise ConfigError("path_patterns must be a mapping or a list")
