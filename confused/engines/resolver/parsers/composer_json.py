"""Parser for PHP composer.json files."""

from __future__ import annotations

from confused.engines.resolver.models import OriginKind, PackageReference
from confused.engines.resolver.parsers.base import BaseParser, load_json_object

_SECTIONS = ("require", "require-dev")

_GIT_PREFIXES = ("git+ssh:", "git+http:", "git+https:", "git:")

# Platform requirements are provided by the runtime, not by Packagist.
_PLATFORM_NAMES = {"php", "hhvm", "composer", "composer-plugin-api", "composer-runtime-api"}
_PLATFORM_PREFIXES = ("php-", "ext-", "lib-")


def classify_composer_version(version: str) -> OriginKind:
    spec = version.strip().lower()
    if spec.startswith("file:"):
        return OriginKind.LOCAL_PATH
    if spec.startswith(("http:", "https:")):
        return OriginKind.DIRECT_URL
    if spec.startswith(_GIT_PREFIXES):
        return OriginKind.GIT_REF
    return OriginKind.REGISTRY


def is_platform_package(name: str) -> bool:
    lowered = name.lower()
    return lowered in _PLATFORM_NAMES or lowered.startswith(_PLATFORM_PREFIXES)


class ComposerJsonParser(BaseParser):
    ecosystem = "composer"

    def _parse(self, content: bytes) -> list[PackageReference]:
        data = load_json_object(content)
        refs: list[PackageReference] = []

        for section in _SECTIONS:
            deps = data.get(section)
            if not isinstance(deps, dict):
                continue
            for name, version in deps.items():
                if is_platform_package(name):
                    continue
                version = version if isinstance(version, str) else ""
                refs.append(
                    PackageReference(
                        identifier=name,
                        version_spec=version,
                        origin=classify_composer_version(version),
                    )
                )

        return refs
