"""Maven Central resolver.

Only the group is looked up: an unclaimed groupId is what an attacker
would register.
"""

from __future__ import annotations

from confused.engines.resolver.models import PackageReference
from confused.engines.resolver.resolvers.base import RegistryResolver

MAVEN_CENTRAL = "https://repo1.maven.org/maven2/"


def group_of(identifier: str) -> str:
    group, sep, _ = identifier.partition("/")
    return group if sep else ""


class MavenResolver(RegistryResolver):
    ecosystem = "mvn"

    def url_for(self, ref: PackageReference) -> str | None:
        group = group_of(ref.identifier)
        if not group:
            return None
        return MAVEN_CENTRAL + group.replace(".", "/") + "/"
