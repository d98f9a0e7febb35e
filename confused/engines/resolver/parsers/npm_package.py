"""Parser for npm package.json files."""

from __future__ import annotations

import re

from confused.engines.resolver.models import OriginKind, PackageReference
from confused.engines.resolver.parsers.base import BaseParser, load_json_object

_SECTIONS = ("dependencies", "devDependencies", "peerDependencies", "optionalDependencies")

_GIT_PREFIXES = ("git+", "git:", "github:", "gitlab:", "bitbucket:")
_URL_PREFIXES = ("http:", "https:")
_LOCAL_PREFIXES = ("file:", "link:")

# GitHub shorthand: user/repo or user/repo#ref (scoped names start with '@')
_GITHUB_SHORTHAND_RE = re.compile(r"^[^/@\s:]+/[^/\s:]+(#\S*)?$")


def classify_npm_version(version: str) -> OriginKind:
    """Classify an npm version spec by where it is fetched from."""
    spec = version.strip().lower()
    if spec.startswith(_GIT_PREFIXES):
        return OriginKind.GIT_REF
    if spec.startswith(_URL_PREFIXES):
        return OriginKind.DIRECT_URL
    if spec.startswith(_LOCAL_PREFIXES):
        return OriginKind.LOCAL_PATH
    if _GITHUB_SHORTHAND_RE.match(spec):
        return OriginKind.GIT_REF
    return OriginKind.REGISTRY


class NpmPackageParser(BaseParser):
    ecosystem = "npm"

    def _parse(self, content: bytes) -> list[PackageReference]:
        data = load_json_object(content)
        refs: list[PackageReference] = []

        for section in _SECTIONS:
            deps = data.get(section)
            if not isinstance(deps, dict):
                continue
            for name, version in deps.items():
                if not isinstance(version, str):
                    continue
                refs.append(
                    PackageReference(
                        identifier=name,
                        version_spec=version,
                        origin=classify_npm_version(version),
                    )
                )

        return refs
