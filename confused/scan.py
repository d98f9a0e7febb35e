"""Top-level scan entry points, one per target kind.

Each validates its ScanConfig before any I/O and raises ConfigError when it is
invalid.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from confused.core.config import ScanConfig
from confused.engines.github_scanner.github_client import GitHubClient
from confused.engines.github_scanner.scanner import GitHubScanner
from confused.engines.resolver.models import ManifestSource, ScanReport
from confused.engines.resolver.registry import ecosystem_for_file
from confused.engines.resolver.scanner import ManifestResolver
from confused.engines.web_scanner.scanner import WebScanner
from confused.exceptions import UnsupportedEcosystem

log = structlog.get_logger("confused.engine")


async def scan_file(
    path: str | Path,
    ecosystem: str | None = None,
    config: ScanConfig | None = None,
) -> ScanReport:
    """Resolve a local manifest file.

    *ecosystem* defaults to the one owning the file's name. Lookups for the
    file's packages are spread over ``config.workers`` pool workers.
    """
    config = config or ScanConfig()
    config.validate()
    path = Path(path)
    if ecosystem is None:
        detected = ecosystem_for_file(path.name)
        if detected is None:
            raise UnsupportedEcosystem(path.name)
        ecosystem = detected.value

    log.info("scan.file", target=str(path), ecosystem=ecosystem, workers=config.workers)
    source = ManifestSource(target=str(path), ecosystem=ecosystem, content=path.read_bytes())
    async with config.http_client() as http:
        resolver = ManifestResolver(http, config.safe_spaces)
        result = await resolver.resolve(source, "file", workers=config.workers)
    return ScanReport(results=[result])


def _github_client(config: ScanConfig) -> GitHubClient:
    if not config.github_token:
        log.warning(
            "github.unauthenticated",
            detail="no GitHub token, requests are rate limited more aggressively",
        )
    return GitHubClient(config.github_token, timeout=config.timeout)


async def scan_github_repo(repo: str, config: ScanConfig | None = None) -> ScanReport:
    """Scan one ``owner/repo``; failures of the repository itself propagate."""
    config = config or ScanConfig()
    config.validate()
    async with _github_client(config) as client, config.http_client() as http:
        scanner = GitHubScanner(
            client,
            http,
            ecosystems=config.languages,
            safe_spaces=config.safe_spaces,
            workers=config.workers,
        )
        results = await scanner.scan_repository(repo, deep=config.deep)
    return ScanReport(results=results)


async def scan_github_org(org: str, config: ScanConfig | None = None) -> ScanReport:
    """Scan up to ``config.max_repos`` public repositories of *org*."""
    config = config or ScanConfig()
    config.validate()
    async with _github_client(config) as client, config.http_client() as http:
        scanner = GitHubScanner(
            client,
            http,
            ecosystems=config.languages,
            safe_spaces=config.safe_spaces,
            workers=config.workers,
        )
        results = await scanner.scan_organization(
            org, max_repos=config.max_repos, deep=config.deep
        )
    return ScanReport(results=results)


async def scan_web(targets: list[str], config: ScanConfig | None = None) -> ScanReport:
    """Check each web target for exposed manifests."""
    config = config or ScanConfig()
    config.validate()
    async with config.http_client() as http:
        scanner = WebScanner(
            http,
            ecosystems=config.languages,
            safe_spaces=config.safe_spaces,
            user_agent=config.user_agent,
            wordlist=config.wordlist,
        )
        results = await scanner.scan_targets(
            targets,
            workers=config.workers,
            deep=config.deep,
            max_depth=config.max_depth,
        )
    return ScanReport(results=results)
