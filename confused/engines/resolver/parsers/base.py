"""Shared parser plumbing: decoding and the never-raise contract."""

from __future__ import annotations

import json
from typing import Any

import structlog

from confused.engines.resolver.models import PackageReference
from confused.exceptions import ParseError

log = structlog.get_logger("confused.engine")


def decode(content: bytes) -> str:
    """Decode manifest bytes as UTF-8, dropping a leading BOM."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(f"not valid UTF-8: {exc}") from exc


def load_json_object(content: bytes) -> dict[str, Any]:
    """Parse JSON content that must be a top-level object."""
    try:
        data = json.loads(decode(content))
    except json.JSONDecodeError as exc:
        raise ParseError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, got {type(data).__name__}")
    return data


class BaseParser:
    """Turns ParseError into a logged diagnostic and an empty result."""

    ecosystem: str = ""

    def parse(self, content: bytes) -> list[PackageReference]:
        try:
            return self._parse(content)
        except ParseError as exc:
            log.warning("parser.malformed", ecosystem=self.ecosystem, error=str(exc))
            return []

    def _parse(self, content: bytes) -> list[PackageReference]:
        raise NotImplementedError
