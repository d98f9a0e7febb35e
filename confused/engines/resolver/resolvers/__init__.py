"""Public-registry resolvers, one per ecosystem."""

from confused.engines.resolver.resolvers.base import RegistryResolver
from confused.engines.resolver.resolvers.maven import MavenResolver
from confused.engines.resolver.resolvers.npm import NpmResolver
from confused.engines.resolver.resolvers.packagist import PackagistResolver
from confused.engines.resolver.resolvers.pypi import PypiResolver
from confused.engines.resolver.resolvers.rubygems import RubyGemsResolver

__all__ = [
    "MavenResolver",
    "NpmResolver",
    "PackagistResolver",
    "PypiResolver",
    "RegistryResolver",
    "RubyGemsResolver",
]
