"""Parser for Ruby Gemfile / gems.rb and Gemfile.lock files."""

from __future__ import annotations

import re

from confused.engines.resolver.models import OriginKind, PackageReference
from confused.engines.resolver.parsers.base import BaseParser, decode

# gem 'name', '~> 1.0', '>= 1.0.2', require: false
_GEM_RE = re.compile(r"""^gem\s*\(?\s*['"]([^'"]+)['"](.*)$""")
_QUOTED_RE = re.compile(r"""['"]([^'"]*)['"]""")
_PATH_OPT_RE = re.compile(r"""(?:\bpath\s*:|:path\s*=>)""")
_GIT_OPT_RE = re.compile(r"""(?:\b(?:git|github|gist|bitbucket)\s*:|:(?:git|github)\s*=>)""")

# git '...' do / path '...' do / group :test do, with an optional |args| list
_BLOCK_RE = re.compile(r"^(\w+)\b.*\bdo(?:\s*\|[^|]*\|)?$")
_END_RE = re.compile(r"^end\b")
_BLOCK_ORIGINS = {
    "git": OriginKind.GIT_REF,
    "github": OriginKind.GIT_REF,
    "gist": OriginKind.GIT_REF,
    "bitbucket": OriginKind.GIT_REF,
    "path": OriginKind.LOCAL_PATH,
}

# Lockfile spec entry: four spaces, name, optional (version)
_LOCK_SPEC_RE = re.compile(r"^ {4}([^\s(]+)(?:\s+\(([^)]*)\))?\s*$")

_LOCK_SECTIONS = {
    "GEM": OriginKind.REGISTRY,
    "GIT": OriginKind.GIT_REF,
    "PATH": OriginKind.LOCAL_PATH,
}


def _is_lockfile(lines: list[str]) -> bool:
    return any(line.rstrip() in _LOCK_SECTIONS for line in lines)


class GemfileParser(BaseParser):
    ecosystem = "rubygems"

    def _parse(self, content: bytes) -> list[PackageReference]:
        lines = decode(content).splitlines()
        if _is_lockfile(lines):
            return self._parse_lock(lines)
        return self._parse_gemfile(lines)

    @staticmethod
    def _parse_gemfile(lines: list[str]) -> list[PackageReference]:
        refs: list[PackageReference] = []
        # Origin of each enclosing ``... do`` block, None for group/source/etc.
        blocks: list[OriginKind | None] = []
        for raw_line in lines:
            line = raw_line.split("#", 1)[0].strip()
            if _END_RE.match(line):
                if blocks:
                    blocks.pop()
                continue
            opener = _BLOCK_RE.match(line)
            if opener:
                blocks.append(_BLOCK_ORIGINS.get(opener.group(1)))
                continue

            m = _GEM_RE.match(line)
            if not m:
                continue
            name, rest = m.group(1), m.group(2)

            if _PATH_OPT_RE.search(rest):
                origin = OriginKind.LOCAL_PATH
            elif _GIT_OPT_RE.search(rest):
                origin = OriginKind.GIT_REF
            else:
                inherited = [o for o in blocks if o is not None]
                origin = inherited[-1] if inherited else OriginKind.REGISTRY

            # Constraints are the quoted positional args before any option.
            positional = re.split(r"\b\w+\s*:|:\w+\s*=>", rest, maxsplit=1)[0]
            constraint = ", ".join(_QUOTED_RE.findall(positional))
            refs.append(PackageReference(identifier=name, version_spec=constraint, origin=origin))
        return refs

    @staticmethod
    def _parse_lock(lines: list[str]) -> list[PackageReference]:
        refs: list[PackageReference] = []
        origin: OriginKind | None = None
        in_specs = False

        for line in lines:
            header = line.rstrip()
            if header and not header.startswith(" "):
                origin = _LOCK_SECTIONS.get(header)
                in_specs = False
                continue
            if origin is None:
                continue
            if header.strip() == "specs:":
                in_specs = True
                continue
            if not in_specs:
                continue
            m = _LOCK_SPEC_RE.match(header)
            if m:
                refs.append(
                    PackageReference(
                        identifier=m.group(1),
                        version_spec=m.group(2) or "",
                        origin=origin,
                    )
                )
        return refs
