"""Parser for pip requirements files."""

from __future__ import annotations

import re

from confused.engines.resolver.models import OriginKind, PackageReference
from confused.engines.resolver.parsers.base import BaseParser, decode

# First of these ends the package name; ';' starts an environment marker and
# '@' a PEP 508 direct reference.
_DELIMITERS_RE = re.compile(r"[=<>!~#\[ \t;@]")

_VCS_PREFIXES = ("git+", "hg+", "svn+", "bzr+")
_URL_PREFIXES = ("http://", "https://", "file:")
_LOCAL_PREFIXES = (".", "/", "~/")

_EGG_RE = re.compile(r"#egg=([A-Za-z0-9._-]+)")


def _logical_lines(text: str) -> list[str]:
    """Drop comment lines and join ``\\`` continuations."""
    lines: list[str] = []
    pending = ""
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("#"):
            continue
        if not line:
            continue
        if line.endswith("\\"):
            pending += line[:-1]
            continue
        lines.append(pending + line)
        pending = ""
    if pending:
        lines.append(pending)
    return lines


def _url_origin(url: str) -> OriginKind:
    lowered = url.lower()
    if lowered.startswith(_VCS_PREFIXES):
        return OriginKind.GIT_REF
    if lowered.startswith("file:"):
        return OriginKind.LOCAL_PATH
    if "://" in lowered:
        return OriginKind.DIRECT_URL
    return OriginKind.LOCAL_PATH


def _is_local_path(line: str) -> bool:
    """``./pkg``, ``/abs/pkg`` or ``libs/pkg``: a path, never a project name."""
    if line.startswith(_LOCAL_PREFIXES):
        return True
    head = _DELIMITERS_RE.split(line, maxsplit=1)[0]
    return "/" in head or "\\" in head


def _url_reference(url: str) -> PackageReference:
    egg = _EGG_RE.search(url)
    return PackageReference(
        identifier=egg.group(1) if egg else url,
        version_spec=url,
        origin=_url_origin(url),
    )


class PipRequirementsParser(BaseParser):
    ecosystem = "pip"

    def _parse(self, content: bytes) -> list[PackageReference]:
        refs: list[PackageReference] = []

        for line in _logical_lines(decode(content)):
            if line.startswith(("-e ", "--editable ", "--editable=")):
                target = re.split(r"[\s=]", line, maxsplit=1)[1].strip()
                refs.append(_url_reference(target))
                continue
            if line.startswith("-"):
                # -r, -c, --index-url and friends
                continue
            if line.lower().startswith(_VCS_PREFIXES + _URL_PREFIXES) or _is_local_path(line):
                refs.append(_url_reference(line.split()[0]))
                continue

            tokens = [t for t in _DELIMITERS_RE.split(line) if t.strip()]
            if not tokens:
                continue
            name = tokens[0].strip()
            spec = line[line.find(name) + len(name) :].strip()

            origin = OriginKind.REGISTRY
            # PEP 508 direct reference: name @ url, spaces optional
            if spec.startswith("@"):
                origin = _url_origin(spec[1:].strip())
            refs.append(PackageReference(identifier=name, version_spec=spec, origin=origin))

        return refs
