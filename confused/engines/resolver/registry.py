"""Ecosystem table — maps an ecosystem name to its parser and resolver."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from confused.engines.resolver.models import PackageReference
from confused.engines.resolver.parsers import (
    ComposerJsonParser,
    GemfileParser,
    MavenPomParser,
    NpmPackageParser,
    PipRequirementsParser,
)
from confused.engines.resolver.resolvers import (
    MavenResolver,
    NpmResolver,
    PackagistResolver,
    PypiResolver,
    RegistryResolver,
    RubyGemsResolver,
)
from confused.exceptions import UnsupportedEcosystem


@runtime_checkable
class ManifestParser(Protocol):
    """Interface that every manifest parser must satisfy."""

    ecosystem: str

    def parse(self, content: bytes) -> list[PackageReference]: ...


class Ecosystem(str, enum.Enum):
    NPM = "npm"
    PIP = "pip"
    COMPOSER = "composer"
    MAVEN = "mvn"
    RUBYGEMS = "rubygems"


_ALIASES = {"maven": Ecosystem.MAVEN}


@dataclass(frozen=True)
class EcosystemHandler:
    ecosystem: Ecosystem
    parser: ManifestParser
    resolver_cls: type[RegistryResolver]
    manifest_files: tuple[str, ...]


_HANDLERS: dict[Ecosystem, EcosystemHandler] = {
    Ecosystem.NPM: EcosystemHandler(
        Ecosystem.NPM, NpmPackageParser(), NpmResolver, ("package.json",)
    ),
    Ecosystem.PIP: EcosystemHandler(
        Ecosystem.PIP,
        PipRequirementsParser(),
        PypiResolver,
        ("requirements.txt", "requirements-dev.txt"),
    ),
    Ecosystem.COMPOSER: EcosystemHandler(
        Ecosystem.COMPOSER, ComposerJsonParser(), PackagistResolver, ("composer.json",)
    ),
    Ecosystem.MAVEN: EcosystemHandler(
        Ecosystem.MAVEN, MavenPomParser(), MavenResolver, ("pom.xml",)
    ),
    Ecosystem.RUBYGEMS: EcosystemHandler(
        Ecosystem.RUBYGEMS,
        GemfileParser(),
        RubyGemsResolver,
        ("Gemfile", "Gemfile.lock", "gems.rb"),
    ),
}


def to_ecosystem(name: str | Ecosystem) -> Ecosystem:
    """Normalise an ecosystem name; raises UnsupportedEcosystem."""
    if isinstance(name, Ecosystem):
        return name
    key = name.strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return Ecosystem(key)
    except ValueError:
        raise UnsupportedEcosystem(name) from None


def get_handler(name: str | Ecosystem) -> EcosystemHandler:
    return _HANDLERS[to_ecosystem(name)]


def resolver_for(
    name: str | Ecosystem, client: httpx.AsyncClient
) -> tuple[ManifestParser, RegistryResolver]:
    """Return the (parser, resolver) pair for an ecosystem."""
    handler = get_handler(name)
    return handler.parser, handler.resolver_cls(client)


def manifest_files(ecosystems: list[str] | None = None) -> dict[str, Ecosystem]:
    """Map manifest base filenames to their ecosystem, in table order."""
    selected = [to_ecosystem(e) for e in ecosystems] if ecosystems else list(Ecosystem)
    files: dict[str, Ecosystem] = {}
    for eco in selected:
        for filename in _HANDLERS[eco].manifest_files:
            files.setdefault(filename, eco)
    return files


def ecosystem_for_file(filename: str) -> Ecosystem | None:
    """Ecosystem owning a manifest base filename, if any."""
    return manifest_files().get(filename)
