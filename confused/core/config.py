"""Scan configuration from environment variables, plus validation."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from confused.exceptions import ConfigError

DEFAULT_LANGUAGES = ["npm", "pip", "composer", "mvn", "rubygems"]
DEFAULT_USER_AGENT = "Confused-DepConfusion-Scanner/2.0"


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(key: str, default: list[str]) -> list[str]:
    raw = os.environ.get(key)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class ScanConfig:
    """Values supplied by the command layer to every scan entry point."""

    workers: int = 10
    timeout: float = 30.0
    max_repos: int = 50
    max_depth: int = 3
    deep: bool = False
    languages: list[str] = field(default_factory=lambda: list(DEFAULT_LANGUAGES))
    safe_spaces: list[str] = field(default_factory=list)
    github_token: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    wordlist: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls) -> ScanConfig:
        """Build a config from ``CONFUSED_*`` environment variables."""
        return cls(
            workers=_env_int("CONFUSED_WORKERS", 10),
            timeout=float(_env_int("CONFUSED_TIMEOUT", 30)),
            max_repos=_env_int("CONFUSED_MAX_REPOS", 50),
            max_depth=_env_int("CONFUSED_MAX_DEPTH", 3),
            deep=_env_bool("CONFUSED_DEEP_SCAN", False),
            languages=_env_list("CONFUSED_LANGUAGES", DEFAULT_LANGUAGES),
            safe_spaces=_env_list("CONFUSED_SAFE_SPACES", []),
            github_token=(
                os.environ.get("CONFUSED_GITHUB_TOKEN") or os.environ.get("GITHUB_TOKEN") or None
            ),
            user_agent=os.environ.get("CONFUSED_USER_AGENT", DEFAULT_USER_AGENT),
            wordlist=_env_list("CONFUSED_WORDLIST", []),
        )

    def validate(self) -> None:
        """Raise ConfigError when a value is out of range."""
        # Local import: the registry pulls in every parser module.
        from confused.engines.resolver.registry import get_handler

        if self.workers <= 0:
            raise ConfigError("workers must be greater than 0")
        if self.timeout <= 0:
            raise ConfigError("timeout must be greater than 0")
        if self.max_repos <= 0:
            raise ConfigError("max_repos must be greater than 0")
        if self.max_depth < 0:
            raise ConfigError("max_depth must not be negative")
        for lang in self.languages:
            try:
                get_handler(lang)
            except ValueError as exc:
                raise ConfigError(f"invalid language: {lang}") from exc

    def http_client(self) -> httpx.AsyncClient:
        """Shared client for registry lookups and web probing."""
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
        )


def read_target_file(path: str | Path) -> list[str]:
    """Read newline-delimited targets, skipping blanks and ``#`` comments."""
    targets: list[str] = []
    for raw_line in Path(path).read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line and not line.startswith("#"):
            targets.append(line)
    return targets
