"""Resolution engine — parse manifests and check names against public registries."""

from confused.engines.resolver.models import (
    ManifestSource,
    OriginKind,
    PackageReference,
    ScanReport,
    ScanResult,
)
from confused.engines.resolver.registry import Ecosystem, get_handler, resolver_for
from confused.engines.resolver.scanner import ManifestResolver

__all__ = [
    "Ecosystem",
    "ManifestResolver",
    "ManifestSource",
    "OriginKind",
    "PackageReference",
    "ScanReport",
    "ScanResult",
    "get_handler",
    "resolver_for",
]
