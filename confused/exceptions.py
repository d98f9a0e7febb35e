"""Custom exceptions for confused."""


class ConfusedError(Exception):
    """Base exception for all scanner errors."""


class ParseError(ConfusedError):
    """Raised inside a parser when manifest content cannot be understood."""


class NetworkError(ConfusedError):
    """Raised when a registry lookup fails without an HTTP status to judge."""


class RateLimited(ConfusedError):
    """Raised when a registry answers 429 Too Many Requests."""

    def __init__(self, url: str, attempt: int) -> None:
        self.url = url
        self.attempt = attempt
        super().__init__(f"rate limited by {url} (attempt {attempt})")


class UnsupportedEcosystem(ConfusedError, ValueError):
    """Raised when no parser/resolver pair exists for an ecosystem name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unsupported ecosystem: {name}")


class TargetUnreachable(ConfusedError):
    """Raised when a GitHub repository or web host cannot be scanned at all."""

    def __init__(self, target: str, reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"target {target} unreachable: {reason}")


class ResultFinalizedError(ConfusedError):
    """Raised when a finalized ScanResult is mutated."""


class SafeSpacePatternError(ConfusedError):
    """Raised when a safe-space glob is malformed."""


class PoolClosedError(ConfusedError):
    """Raised when work is submitted to a stopped WorkerPool."""


class ConfigError(ConfusedError, ValueError):
    """Raised for invalid configuration values."""
