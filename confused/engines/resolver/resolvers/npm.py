"""npm registry resolver."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from confused.engines.resolver.models import PackageReference
from confused.engines.resolver.resolvers.base import RegistryResolver

log = structlog.get_logger("confused.engine")

NPM_REGISTRY = "https://registry.npmjs.org/"


class NpmResolver(RegistryResolver):
    ecosystem = "npm"

    def url_for(self, ref: PackageReference) -> str | None:
        # Scoped packages keep the '@' but send '/' escaped.
        return NPM_REGISTRY + quote(ref.identifier, safe="@")

    def _is_published(self, ref: PackageReference, response: httpx.Response) -> bool:
        """A document whose every version was unpublished can be re-claimed."""
        try:
            doc = response.json()
        except ValueError:
            return True
        if not isinstance(doc, dict):
            return True

        time_info = doc.get("time")
        unpublished = isinstance(time_info, dict) and bool(time_info.get("unpublished"))
        no_versions = "versions" in doc and not doc["versions"]
        if unpublished or no_versions:
            log.warning(
                "registry.npm_unpublished",
                package=ref.identifier,
                detail="all versions unpublished, namespace can be taken over",
            )
            return False
        return True
