"""Manifest parsers, one per ecosystem."""

from confused.engines.resolver.parsers.composer_json import ComposerJsonParser
from confused.engines.resolver.parsers.gemfile import GemfileParser
from confused.engines.resolver.parsers.maven_pom import MavenPomParser
from confused.engines.resolver.parsers.npm_package import NpmPackageParser
from confused.engines.resolver.parsers.pip_requirements import PipRequirementsParser

__all__ = [
    "ComposerJsonParser",
    "GemfileParser",
    "MavenPomParser",
    "NpmPackageParser",
    "PipRequirementsParser",
]
