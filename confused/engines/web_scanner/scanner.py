"""WebScanner: fetch well-known manifest paths from web targets."""

from __future__ import annotations

import asyncio
import posixpath
from urllib.parse import urlsplit, urlunsplit

import httpx
import structlog

from confused.core.pool import WorkerPool
from confused.engines.resolver.models import ManifestSource, ScanResult
from confused.engines.resolver.registry import Ecosystem, manifest_files
from confused.engines.resolver.scanner import ManifestResolver
from confused.exceptions import TargetUnreachable

log = structlog.get_logger("confused.engine")

# Checked one level deep in deep mode.
COMMON_DIRS = (
    "src/",
    "lib/",
    "app/",
    "web/",
    "public/",
    "static/",
    "api/",
    "backend/",
    "frontend/",
    "client/",
    "server/",
)


def normalize_target(target: str) -> str:
    """Default to https:// when no scheme is given; raises TargetUnreachable."""
    target = target.strip()
    if not target.startswith(("http://", "https://")):
        target = "https://" + target
    parts = urlsplit(target)
    if not parts.hostname:
        raise TargetUnreachable(target, "invalid URL")
    return target


def join_url(base: str, path: str) -> str:
    parts = urlsplit(base)
    joined = posixpath.join(parts.path or "/", path.lstrip("/"))
    return urlunsplit((parts.scheme, parts.netloc, joined, "", ""))


class WebScanner:
    """Fetch candidate manifests from web targets and resolve those that exist."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        ecosystems: list[str] | None = None,
        safe_spaces: list[str] | None = None,
        user_agent: str | None = None,
        wordlist: list[str] | None = None,
    ) -> None:
        self._http = http
        self._resolver = ManifestResolver(http, safe_spaces)
        self._files = manifest_files(ecosystems)
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._wordlist = [w.strip().lstrip("/") for w in (wordlist or []) if w.strip()]

    def candidate_paths(self, *, deep: bool = False, max_depth: int = 3) -> list[str]:
        """Root manifest paths, wordlist entries, then one directory level if deep."""
        base = list(self._files)
        for word in self._wordlist:
            if word not in base and self._ecosystem_for(word) is not None:
                base.append(word)

        paths = list(base)
        if deep and max_depth >= 1:
            for directory in COMMON_DIRS:
                paths.extend(directory + p for p in base)
        return paths

    async def scan_target(
        self, target: str, *, deep: bool = False, max_depth: int = 3
    ) -> list[ScanResult]:
        """Request every candidate path of *target* in turn.

        Raises TargetUnreachable when not a single request got an HTTP response.
        """
        base_url = normalize_target(target)
        log.info("web.scan_target", target=base_url, deep=deep)

        results: list[ScanResult] = []
        requested = failed = 0
        last_error = ""
        for path in self.candidate_paths(deep=deep, max_depth=max_depth):
            eco = self._ecosystem_for(path)
            if eco is None:
                continue
            requested += 1
            try:
                result = await self._fetch_manifest(base_url, path, eco)
            except httpx.RequestError as exc:
                failed += 1
                last_error = f"{type(exc).__name__}: {exc}"
                log.debug("web.fetch_failed", target=base_url, path=path, error=last_error)
                continue
            if result is not None:
                results.append(result)

        if requested and failed == requested:
            raise TargetUnreachable(base_url, last_error)
        return results

    async def scan_targets(
        self,
        targets: list[str],
        *,
        workers: int = 10,
        deep: bool = False,
        max_depth: int = 3,
    ) -> list[ScanResult]:
        """Scan *targets* on a WorkerPool, one target per work item."""
        results: list[ScanResult] = []
        lock = asyncio.Lock()

        def _job(target: str):
            async def _run() -> None:
                try:
                    target_results = await self.scan_target(target, deep=deep, max_depth=max_depth)
                except TargetUnreachable as exc:
                    log.warning("web.target_failed", target=target, error=str(exc))
                    return
                async with lock:
                    results.extend(target_results)

            return _run

        async with WorkerPool(workers) as pool:
            for target in targets:
                await pool.submit(_job(target))
        return results

    async def _fetch_manifest(
        self, base_url: str, path: str, eco: Ecosystem
    ) -> ScanResult | None:
        url = join_url(base_url, path)
        response = await self._http.get(url, headers=self._headers)
        if response.status_code != 200:
            log.debug("web.path_skipped", url=url, status=response.status_code)
            return None

        log.info("web.manifest_found", url=url, ecosystem=eco.value)
        source = ManifestSource(
            target=f"{urlsplit(base_url).netloc}:{path}",
            ecosystem=eco.value,
            content=response.content,
            metadata={
                "file_path": path,
                "file_url": url,
                "file_size": len(response.content),
                "status_code": response.status_code,
            },
        )
        return await self._resolver.resolve(source, "web")

    def _ecosystem_for(self, path: str) -> Ecosystem | None:
        return self._files.get(posixpath.basename(path))
