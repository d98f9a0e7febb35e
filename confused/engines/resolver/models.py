"""Data models for the resolution engine."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from confused.exceptions import ResultFinalizedError

ScanKind = Literal["file", "github", "web"]


class OriginKind(str, enum.Enum):
    """Where a dependency is fetched from, as declared by its version spec."""

    REGISTRY = "registry"
    LOCAL_PATH = "local_path"
    DIRECT_URL = "direct_url"
    GIT_REF = "git_ref"


@dataclass(frozen=True)
class PackageReference:
    """A single dependency declared in a manifest."""

    identifier: str
    version_spec: str = ""
    origin: OriginKind = OriginKind.REGISTRY

    @property
    def is_registry(self) -> bool:
        return self.origin is OriginKind.REGISTRY


@dataclass
class ManifestSource:
    """Raw manifest content waiting to be parsed and resolved."""

    target: str
    ecosystem: str
    content: bytes
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScanResult:
    """Outcome of resolving one manifest.

    Created empty, populated through :meth:`add_vulnerable` / :meth:`add_safe`
    by the task that owns it, then frozen by :meth:`finalize`.
    """

    target: str
    kind: ScanKind
    ecosystem: str
    vulnerable: list[str] = field(default_factory=list)
    safe: list[str] = field(default_factory=list)
    total: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)
    _started: float = field(default_factory=time.monotonic, repr=False, compare=False)
    _finalized: bool = field(default=False, repr=False, compare=False)

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def is_vulnerable(self) -> bool:
        return bool(self.vulnerable)

    def add_vulnerable(self, identifier: str) -> None:
        self._ensure_open()
        self.vulnerable.append(identifier)

    def add_safe(self, identifier: str) -> None:
        self._ensure_open()
        self.safe.append(identifier)

    def finalize(self) -> None:
        """Compute counts and duration; the result is read-only afterwards."""
        self._ensure_open()
        self.total = len(self.vulnerable) + len(self.safe)
        self.duration = time.monotonic() - self._started
        self._finalized = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "type": self.kind,
            "language": self.ecosystem,
            "vulnerable_packages": list(self.vulnerable),
            "safe_packages": list(self.safe),
            "total_packages": self.total,
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration,
            "metadata": dict(self.metadata),
        }

    def _ensure_open(self) -> None:
        if self._finalized:
            raise ResultFinalizedError(f"scan result for {self.target} is finalized")


@dataclass
class ScanReport:
    """Aggregate of every ScanResult produced by one scan invocation."""

    results: list[ScanResult] = field(default_factory=list)

    @property
    def total_targets(self) -> int:
        return len(self.results)

    @property
    def vulnerable_count(self) -> int:
        return sum(len(r.vulnerable) for r in self.results)

    @property
    def safe_count(self) -> int:
        return sum(len(r.safe) for r in self.results)

    @property
    def duration(self) -> float:
        return max((r.duration for r in self.results), default=0.0)

    @property
    def any_vulnerable(self) -> bool:
        """True when at least one result reports a vulnerable package."""
        return any(r.is_vulnerable for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "total_targets": self.total_targets,
                "vulnerable_count": self.vulnerable_count,
                "safe_count": self.safe_count,
                "total_duration": self.duration,
            },
        }
