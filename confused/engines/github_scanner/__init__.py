"""GitHub scanner engine — resolve manifests found in repositories."""

from confused.engines.github_scanner.github_client import GitHubClient
from confused.engines.github_scanner.scanner import GitHubScanner

__all__ = ["GitHubClient", "GitHubScanner"]
