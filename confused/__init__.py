"""confused: dependency confusion scanner for local manifests, GitHub and web targets."""

__version__ = "2.0.0"

from confused.engines.resolver.models import (
    ManifestSource,
    OriginKind,
    PackageReference,
    ScanReport,
    ScanResult,
)
from confused.scan import scan_file, scan_github_org, scan_github_repo, scan_web

__all__ = [
    "ManifestSource",
    "OriginKind",
    "PackageReference",
    "ScanReport",
    "ScanResult",
    "scan_file",
    "scan_github_org",
    "scan_github_repo",
    "scan_web",
]
