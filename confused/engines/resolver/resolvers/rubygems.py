"""RubyGems resolver."""

from __future__ import annotations

from confused.engines.resolver.models import PackageReference
from confused.engines.resolver.resolvers.base import RegistryResolver


class RubyGemsResolver(RegistryResolver):
    ecosystem = "rubygems"

    def url_for(self, ref: PackageReference) -> str | None:
        return f"https://rubygems.org/api/v1/gems/{ref.identifier}.json"
