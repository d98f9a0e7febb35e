"""PyPI resolver."""

from __future__ import annotations

from confused.engines.resolver.models import PackageReference
from confused.engines.resolver.resolvers.base import RegistryResolver


class PypiResolver(RegistryResolver):
    ecosystem = "pip"

    def url_for(self, ref: PackageReference) -> str | None:
        return f"https://pypi.org/project/{ref.identifier}/"
