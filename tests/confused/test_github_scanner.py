"""Tests for the GitHub client and orchestrator (no network required)."""

from __future__ import annotations

import base64
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from structlog.testing import capture_logs

from confused.engines.github_scanner.github_client import GitHubClient, RateLimitError
from confused.engines.github_scanner.scanner import (
    GitHubScanner,
    find_manifests,
    parse_full_name,
)
from confused.engines.resolver.registry import Ecosystem, manifest_files
from confused.exceptions import TargetUnreachable

NPM = "https://registry.npmjs.org/"

_PACKAGE_JSON = json.dumps(
    {"dependencies": {"lodash": "^4.17.21", "@company/private-package": "^2.0.0"}}
).encode()


def _blob(content: bytes) -> dict:
    return {"content": base64.b64encode(content).decode(), "encoding": "base64"}


class FakeGitHub:
    """In-memory GitHub API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.repos: dict[str, dict] = {}
        self.trees: dict[tuple[str, str], list[dict] | int] = {}
        self.blobs: dict[str, bytes] = {}
        self.branches: dict[str, list[str]] = {}
        self.orgs: dict[str, list[str]] = {}
        self.requests: list[str] = []

    def add_repo(
        self,
        full_name: str,
        files: dict[str, bytes],
        *,
        branch: str = "main",
        extra_branches: dict[str, dict[str, bytes]] | None = None,
    ) -> None:
        self.repos[full_name] = {"full_name": full_name, "default_branch": branch}
        self.trees[(full_name, branch)] = self._entries(files)
        self.branches[full_name] = [branch]
        for name, branch_files in (extra_branches or {}).items():
            self.trees[(full_name, name)] = self._entries(branch_files)
            self.branches[full_name].append(name)

    def _entries(self, files: dict[str, bytes]) -> list[dict]:
        entries = []
        for path, content in files.items():
            sha = f"sha-{abs(hash((path, content)))}"
            self.blobs[sha] = content
            entries.append({"path": path, "type": "blob", "sha": sha, "size": len(content)})
        entries.append({"path": "src", "type": "tree", "sha": "dir"})
        return entries

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        parts = path.strip("/").split("/")

        if parts[0] == "orgs" and len(parts) == 3:
            names = self.orgs.get(parts[1])
            if names is None:
                return httpx.Response(404)
            return httpx.Response(200, json=[{"full_name": n} for n in names])

        if parts[0] != "repos" or len(parts) < 3:
            return httpx.Response(404)
        full_name = f"{parts[1]}/{parts[2]}"
        if full_name not in self.repos:
            return httpx.Response(404)
        rest = parts[3:]

        if not rest:
            return httpx.Response(200, json=self.repos[full_name])
        if rest == ["branches"]:
            return httpx.Response(200, json=[{"name": b} for b in self.branches[full_name]])
        if rest[:2] == ["git", "trees"]:
            tree = self.trees.get((full_name, rest[2]), 404)
            if isinstance(tree, int):
                return httpx.Response(tree)
            return httpx.Response(200, json={"tree": tree, "truncated": False})
        if rest[:2] == ["git", "blobs"]:
            content = self.blobs.get(rest[2])
            if content is None:
                return httpx.Response(404)
            return httpx.Response(200, json=_blob(content))
        return httpx.Response(404)

    def client(self) -> GitHubClient:
        return GitHubClient("t0ken", transport=httpx.MockTransport(self.handler))


# ── TestHelpers ───────────────────────────────────────────────────────────


class TestHelpers:
    def test_parse_full_name(self):
        assert parse_full_name("acme/app") == ("acme", "app")
        assert parse_full_name(" /acme/app/ ") == ("acme", "app")

    @pytest.mark.parametrize("bad", ["acme", "acme/app/extra", "/app", ""])
    def test_parse_full_name_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_full_name(bad)

    def test_find_manifests(self):
        entries = [
            {"path": "package.json", "type": "blob", "sha": "1"},
            {"path": "web/package.json", "type": "blob", "sha": "2"},
            {"path": "docs/package.json.bak", "type": "blob", "sha": "3"},
            {"path": "requirements.txt", "type": "tree", "sha": "4"},
            {"path": "svc/requirements-dev.txt", "type": "blob", "sha": "5"},
        ]
        found = find_manifests(entries, manifest_files())
        assert [(e["sha"], eco) for e, eco in found] == [
            ("1", Ecosystem.NPM),
            ("2", Ecosystem.NPM),
            ("5", Ecosystem.PIP),
        ]

    def test_find_manifests_respects_languages(self):
        entries = [
            {"path": "package.json", "type": "blob", "sha": "1"},
            {"path": "pom.xml", "type": "blob", "sha": "2"},
        ]
        found = find_manifests(entries, manifest_files(["mvn"]))
        assert [e["sha"] for e, _ in found] == ["2"]


# ── TestGitHubClient ──────────────────────────────────────────────────────


class TestGitHubClient:
    def test_parse_next_link(self):
        header = (
            '<https://api.github.com/orgs/acme/repos?page=2>; rel="next", '
            '<https://api.github.com/orgs/acme/repos?page=5>; rel="last"'
        )
        assert GitHubClient._parse_next_link(header) == "https://api.github.com/orgs/acme/repos?page=2"
        assert GitHubClient._parse_next_link("") is None

    def test_token_header(self):
        client = GitHubClient("abc")
        assert client._client.headers["Authorization"] == "token abc"
        assert client.authenticated

    def test_no_token(self):
        client = GitHubClient(None)
        assert "Authorization" not in client._client.headers
        assert not client.authenticated

    @pytest.mark.anyio
    async def test_pagination_follows_link(self):
        def _handler(request: httpx.Request) -> httpx.Response:
            page = request.url.params.get("page", "1")
            if page == "1":
                return httpx.Response(
                    200,
                    json=[{"full_name": "acme/a"}, {"full_name": "acme/b"}],
                    headers={
                        "Link": '<https://api.github.com/orgs/acme/repos?page=2>; rel="next"'
                    },
                )
            return httpx.Response(200, json=[{"full_name": "acme/c"}])

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            repos = await client.list_org_repos("acme", 150)
        assert [r["full_name"] for r in repos] == ["acme/a", "acme/b", "acme/c"]

    @pytest.mark.anyio
    async def test_list_org_repos_respects_limit(self):
        def _handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"full_name": f"acme/r{i}"} for i in range(10)])

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            repos = await client.list_org_repos("acme", 3)
        assert len(repos) == 3

    @pytest.mark.anyio
    async def test_list_org_repos_sends_type(self):
        seen: list[httpx.Request] = []

        def _handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            await client.list_org_repos("acme", 5)
        assert seen[0].url.params["type"] == "public"
        assert seen[0].url.params["per_page"] == "100"

    @pytest.mark.anyio
    async def test_get_blob_decodes(self):
        def _handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_blob(b"flask==3.0\n"))

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            assert await client.get_blob("acme", "app", "abc") == b"flask==3.0\n"

    @pytest.mark.anyio
    async def test_retry_on_server_error(self):
        responses = iter([httpx.Response(502), httpx.Response(200, json={"ok": True})])

        def _handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                assert await client.get("/repos/acme/app") == {"ok": True}
        mock_sleep.assert_awaited_once()

    @pytest.mark.anyio
    async def test_429_rate_limit_retried(self):
        responses = iter(
            [
                httpx.Response(429, headers={"Retry-After": "7"}),
                httpx.Response(200, json={"ok": True}),
            ]
        )

        def _handler(request: httpx.Request) -> httpx.Response:
            return next(responses)

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
                assert await client.get("/repos/acme/app") == {"ok": True}
        mock_sleep.assert_awaited_once_with(7)

    @pytest.mark.anyio
    async def test_403_rate_limit_exhausted(self):
        def _handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403, headers={"X-RateLimit-Remaining": "0", "Retry-After": "60"}
            )

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            with patch("asyncio.sleep", new_callable=AsyncMock):
                with pytest.raises(RateLimitError):
                    await client.get("/repos/acme/app")

    @pytest.mark.anyio
    async def test_404_raises_immediately(self):
        calls = 0

        def _handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(404)

        async with GitHubClient(transport=httpx.MockTransport(_handler)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get("/repos/acme/missing")
        assert calls == 1


# ── TestScanRepository ────────────────────────────────────────────────────


class TestScanRepository:
    @pytest.mark.anyio
    async def test_default_branch_manifests(self, make_client):
        gh = FakeGitHub()
        gh.add_repo(
            "acme/app",
            {
                "package.json": _PACKAGE_JSON,
                "api/requirements.txt": b"acme-internal==1.0\nrequests\n",
                "README.md": b"# hi",
            },
        )
        registry = make_client(
            {NPM + "lodash": 200, "https://pypi.org/project/requests/": 200}
        )

        async with gh.client() as client, registry:
            scanner = GitHubScanner(client, registry)
            results = await scanner.scan_repository("acme/app")

        by_target = {r.target: r for r in results}
        assert set(by_target) == {"acme/app:package.json", "acme/app:api/requirements.txt"}
        npm = by_target["acme/app:package.json"]
        assert npm.kind == "github"
        assert npm.vulnerable == ["@company/private-package"]
        assert npm.safe == ["lodash"]
        assert npm.metadata["repository"] == "acme/app"
        assert npm.metadata["branch"] == "main"
        assert npm.metadata["file_path"] == "package.json"
        pip = by_target["acme/app:api/requirements.txt"]
        assert pip.vulnerable == ["acme-internal"]

    @pytest.mark.anyio
    async def test_languages_filter(self, make_client):
        gh = FakeGitHub()
        gh.add_repo("acme/app", {"package.json": _PACKAGE_JSON, "requirements.txt": b"x\n"})
        async with gh.client() as client, make_client({}) as registry:
            scanner = GitHubScanner(client, registry, ecosystems=["pip"])
            results = await scanner.scan_repository("acme/app")
        assert [r.ecosystem for r in results] == ["pip"]

    @pytest.mark.anyio
    async def test_deep_scans_other_branches(self, make_client):
        gh = FakeGitHub()
        gh.add_repo(
            "acme/app",
            {"package.json": _PACKAGE_JSON},
            extra_branches={
                # Same file content: already covered by main.
                "release": {"package.json": _PACKAGE_JSON},
                "feature": {"requirements.txt": b"acme-secret\n"},
            },
        )
        async with gh.client() as client, make_client({NPM + "lodash": 200}) as registry:
            scanner = GitHubScanner(client, registry)
            shallow = await scanner.scan_repository("acme/app")
            deep = await scanner.scan_repository("acme/app", deep=True)

        assert len(shallow) == 1
        assert sorted((r.metadata["branch"], r.ecosystem) for r in deep) == [
            ("feature", "pip"),
            ("main", "npm"),
        ]

    @pytest.mark.anyio
    async def test_unknown_repository(self, make_client):
        gh = FakeGitHub()
        async with gh.client() as client, make_client({}) as registry:
            with pytest.raises(TargetUnreachable):
                await GitHubScanner(client, registry).scan_repository("acme/ghost")

    @pytest.mark.anyio
    async def test_bad_name(self, make_client):
        gh = FakeGitHub()
        async with gh.client() as client, make_client({}) as registry:
            with pytest.raises(ValueError):
                await GitHubScanner(client, registry).scan_repository("not-a-repo")

    @pytest.mark.anyio
    async def test_blob_failure_skips_manifest(self, make_client):
        gh = FakeGitHub()
        gh.add_repo("acme/app", {"package.json": _PACKAGE_JSON, "requirements.txt": b"x\n"})
        pip_sha = next(
            e["sha"] for e in gh.trees[("acme/app", "main")] if e["path"] == "requirements.txt"
        )
        del gh.blobs[pip_sha]

        async with gh.client() as client, make_client({NPM + "lodash": 200}) as registry:
            with capture_logs() as logs:
                results = await GitHubScanner(client, registry).scan_repository("acme/app")

        assert [r.ecosystem for r in results] == ["npm"]
        assert any(e["event"] == "github.manifest_failed" for e in logs)


# ── TestScanOrganization ──────────────────────────────────────────────────


class TestScanOrganization:
    @pytest.mark.anyio
    async def test_failing_repository_is_skipped(self, make_client):
        gh = FakeGitHub()
        names = [f"acme/repo{i}" for i in range(1, 6)]
        gh.orgs["acme"] = names
        for name in names:
            gh.add_repo(name, {"package.json": _PACKAGE_JSON})
        gh.trees[("acme/repo3", "main")] = 404

        async with gh.client() as client, make_client({NPM + "lodash": 200}) as registry:
            scanner = GitHubScanner(client, registry, workers=3)
            with capture_logs() as logs:
                results = await scanner.scan_organization("acme")

        repos = sorted(r.metadata["repository"] for r in results)
        assert repos == ["acme/repo1", "acme/repo2", "acme/repo4", "acme/repo5"]
        failures = [e for e in logs if e["event"] == "github.repo_failed"]
        assert [e["repository"] for e in failures] == ["acme/repo3"]
        assert failures[0]["log_level"] == "warning"

    @pytest.mark.anyio
    async def test_max_repos(self, make_client):
        gh = FakeGitHub()
        names = [f"acme/repo{i}" for i in range(1, 6)]
        gh.orgs["acme"] = names
        for name in names:
            gh.add_repo(name, {"requirements.txt": b"acme-internal\n"})

        async with gh.client() as client, make_client({}) as registry:
            results = await GitHubScanner(client, registry).scan_organization(
                "acme", max_repos=2
            )
        assert sorted(r.metadata["repository"] for r in results) == ["acme/repo1", "acme/repo2"]

    @pytest.mark.anyio
    async def test_unknown_org(self, make_client):
        gh = FakeGitHub()
        async with gh.client() as client, make_client({}) as registry:
            with pytest.raises(TargetUnreachable):
                await GitHubScanner(client, registry).scan_organization("ghost")

    @pytest.mark.anyio
    async def test_empty_org(self, make_client):
        gh = FakeGitHub()
        gh.orgs["acme"] = []
        async with gh.client() as client, make_client({}) as registry:
            assert await GitHubScanner(client, registry).scan_organization("acme") == []
