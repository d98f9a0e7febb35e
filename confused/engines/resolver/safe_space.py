"""Safe-space filtering — drop vulnerable names inside operator-owned namespaces.

Patterns use path-style glob rules: ``*`` and ``?`` never cross ``/``, so
``@company/*`` covers ``@company/foo`` but not ``@company/foo/bar``.
"""

from __future__ import annotations

import functools
import re

import structlog

from confused.exceptions import SafeSpacePatternError

log = structlog.get_logger("confused.engine")


@functools.lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a glob into an anchored regex; raises SafeSpacePatternError."""
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        i += 1
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "\\":
            if i >= n:
                raise SafeSpacePatternError(f"trailing escape in pattern {pattern!r}")
            out.append(re.escape(pattern[i]))
            i += 1
        elif ch == "[":
            end = pattern.find("]", i + 1 if i < n and pattern[i] in "^!" else i)
            if end == -1:
                raise SafeSpacePatternError(f"unterminated character class in {pattern!r}")
            body = pattern[i:end]
            i = end + 1
            negate = body[:1] in ("^", "!")
            if negate:
                body = body[1:]
            if not body:
                raise SafeSpacePatternError(f"empty character class in {pattern!r}")
            body = body.replace("\\", "\\\\")
            out.append(f"[^/{body}]" if negate else f"[{body}]")
        else:
            out.append(re.escape(ch))
    try:
        return re.compile("".join(out) + r"\Z")
    except re.error as exc:
        raise SafeSpacePatternError(f"invalid pattern {pattern!r}: {exc}") from exc


def matches(pattern: str, identifier: str) -> bool:
    """True when *identifier* matches *pattern*; malformed patterns never match."""
    try:
        return compile_pattern(pattern).match(identifier) is not None
    except SafeSpacePatternError as exc:
        log.warning("safe_space.bad_pattern", pattern=pattern, error=str(exc))
        return False


def remove_safe(identifiers: list[str], safe_spaces: list[str]) -> list[str]:
    """Return *identifiers* minus those covered by any safe-space pattern."""
    if not safe_spaces:
        return list(identifiers)
    return [
        ident for ident in identifiers if not any(matches(p, ident) for p in safe_spaces)
    ]
