"""Packagist resolver for composer packages."""

from __future__ import annotations

from confused.engines.resolver.models import PackageReference
from confused.engines.resolver.resolvers.base import RegistryResolver


class PackagistResolver(RegistryResolver):
    ecosystem = "composer"

    def url_for(self, ref: PackageReference) -> str | None:
        # Identifier is already vendor/name.
        return f"https://packagist.org/packages/{ref.identifier}.json"
