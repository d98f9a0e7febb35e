"""GitHubScanner — find manifests in repositories and resolve them."""

from __future__ import annotations

import asyncio
import posixpath
from typing import Any

import httpx
import structlog

from confused.core.pool import WorkerPool
from confused.engines.github_scanner.github_client import GitHubClient
from confused.engines.resolver.models import ManifestSource, ScanResult
from confused.engines.resolver.registry import Ecosystem, manifest_files
from confused.engines.resolver.scanner import ManifestResolver
from confused.exceptions import TargetUnreachable

log = structlog.get_logger("confused.engine")

_FALLBACK_BRANCH = "main"


def parse_full_name(repo: str) -> tuple[str, str]:
    """Split ``owner/repo``; raises ValueError on anything else."""
    parts = repo.strip().strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"invalid repository format: {repo} (expected owner/repo)")
    return parts[0], parts[1]


def find_manifests(
    entries: list[dict[str, Any]], files: dict[str, Ecosystem]
) -> list[tuple[dict[str, Any], Ecosystem]]:
    """Blob entries whose base filename is a known manifest."""
    matches: list[tuple[dict[str, Any], Ecosystem]] = []
    for entry in entries:
        if entry.get("type") != "blob":
            continue
        eco = files.get(posixpath.basename(entry.get("path", "")))
        if eco is not None:
            matches.append((entry, eco))
    return matches


class GitHubScanner:
    """Scan one repository (optionally every branch) or a whole organization."""

    def __init__(
        self,
        client: GitHubClient,
        http: httpx.AsyncClient,
        *,
        ecosystems: list[str] | None = None,
        safe_spaces: list[str] | None = None,
        workers: int = 10,
    ) -> None:
        self._client = client
        self._resolver = ManifestResolver(http, safe_spaces)
        self._files = manifest_files(ecosystems)
        self._workers = workers

    # ── repository ─────────────────────────────────────────────────────────

    async def scan_repository(self, repo: str, *, deep: bool = False) -> list[ScanResult]:
        """Resolve every manifest of *repo*'s default branch (all branches if *deep*).

        Raises ValueError for a malformed name and TargetUnreachable when the
        repository or its default-branch tree cannot be read.
        """
        owner, name = parse_full_name(repo)
        full_name = f"{owner}/{name}"
        log.info("github.scan_repository", repository=full_name, deep=deep)

        try:
            info = await self._client.get_repository(owner, name)
        except httpx.HTTPError as exc:
            raise TargetUnreachable(full_name, f"repository lookup failed: {exc}") from exc
        default_branch = info.get("default_branch") or _FALLBACK_BRANCH

        try:
            tree = await self._client.get_tree(owner, name, default_branch)
        except httpx.HTTPError as exc:
            raise TargetUnreachable(
                full_name, f"tree for branch {default_branch} failed: {exc}"
            ) from exc

        seen: set[tuple[str, str]] = set()
        results = await self._scan_tree(owner, name, default_branch, tree, seen)

        if deep:
            try:
                branches = await self._client.list_branches(owner, name)
            except httpx.HTTPError as exc:
                log.warning("github.branches_failed", repository=full_name, error=str(exc))
                branches = []
            for branch in branches:
                if branch == default_branch:
                    continue
                try:
                    branch_tree = await self._client.get_tree(owner, name, branch)
                except httpx.HTTPError as exc:
                    log.warning(
                        "github.branch_failed",
                        repository=full_name,
                        branch=branch,
                        error=str(exc),
                    )
                    continue
                results.extend(await self._scan_tree(owner, name, branch, branch_tree, seen))

        return results

    async def _scan_tree(
        self,
        owner: str,
        name: str,
        branch: str,
        tree: dict[str, Any],
        seen: set[tuple[str, str]],
    ) -> list[ScanResult]:
        if tree.get("truncated"):
            log.warning("github.tree_truncated", repository=f"{owner}/{name}", branch=branch)

        manifests = find_manifests(tree.get("tree") or [], self._files)
        log.debug(
            "github.manifests_found",
            repository=f"{owner}/{name}",
            branch=branch,
            count=len(manifests),
        )

        results: list[ScanResult] = []
        for entry, eco in manifests:
            key = (entry["path"], entry.get("sha", ""))
            # Same file content on another branch was already resolved.
            if key in seen:
                continue
            seen.add(key)
            try:
                results.append(await self._scan_manifest(owner, name, branch, entry, eco))
            except (httpx.HTTPError, ValueError) as exc:
                log.warning(
                    "github.manifest_failed",
                    repository=f"{owner}/{name}",
                    branch=branch,
                    path=entry["path"],
                    error=str(exc),
                )
        return results

    async def _scan_manifest(
        self,
        owner: str,
        name: str,
        branch: str,
        entry: dict[str, Any],
        eco: Ecosystem,
    ) -> ScanResult:
        content = await self._client.get_blob(owner, name, entry["sha"])
        source = ManifestSource(
            target=f"{owner}/{name}:{entry['path']}",
            ecosystem=eco.value,
            content=content,
            metadata={
                "repository": f"{owner}/{name}",
                "branch": branch,
                "file_path": entry["path"],
                "file_sha": entry["sha"],
                "file_size": entry.get("size"),
            },
        )
        return await self._resolver.resolve(source, "github")

    # ── organization ───────────────────────────────────────────────────────

    async def scan_organization(
        self, org: str, *, max_repos: int = 50, deep: bool = False
    ) -> list[ScanResult]:
        """Scan up to *max_repos* public repositories of *org* on a WorkerPool.

        A failing repository is logged and contributes nothing; listing the
        organization itself failing raises TargetUnreachable.
        """
        log.info("github.scan_organization", org=org, max_repos=max_repos, deep=deep)
        try:
            repos = await self._client.list_org_repos(org, max_repos)
        except httpx.HTTPError as exc:
            raise TargetUnreachable(org, f"repository listing failed: {exc}") from exc
        log.info("github.org_repositories", org=org, count=len(repos))

        collected: asyncio.Queue[list[ScanResult]] = asyncio.Queue(maxsize=len(repos) or 1)

        def _job(full_name: str):
            async def _run() -> None:
                try:
                    repo_results = await self.scan_repository(full_name, deep=deep)
                except Exception as exc:
                    log.warning("github.repo_failed", repository=full_name, error=str(exc))
                    repo_results = []
                await collected.put(repo_results)

            return _run

        async with WorkerPool(self._workers) as pool:
            for repo in repos:
                await pool.submit(_job(repo.get("full_name") or f"{org}/{repo.get('name')}"))

        results: list[ScanResult] = []
        for _ in repos:
            results.extend(await collected.get())
        return results
