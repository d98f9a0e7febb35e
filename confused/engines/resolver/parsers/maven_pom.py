"""Parser for Maven pom.xml files."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET

from confused.engines.resolver.models import PackageReference
from confused.engines.resolver.parsers.base import BaseParser, decode
from confused.exceptions import ParseError

_NS = "{http://maven.apache.org/POM/4.0.0}"

# Anything shorter cannot hold a <project> element.
MIN_POM_BYTES = 10

_PROP_RE = re.compile(r"\$\{([^}]+)\}")


def _resolve_props(value: str, props: dict[str, str]) -> str:
    """Replace ${property} placeholders with values from <properties>."""

    def _replace(m: re.Match) -> str:
        return props.get(m.group(1), m.group(0))

    return _PROP_RE.sub(_replace, value)


def _text(element: ET.Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _local(tag: str) -> str:
    return tag.split("}", 1)[-1]


class MavenPomParser(BaseParser):
    """Collects dependencies, build plugins and per-profile build plugins."""

    ecosystem = "mvn"

    def _parse(self, content: bytes) -> list[PackageReference]:
        if len(content) < MIN_POM_BYTES:
            raise ParseError(f"POM too small ({len(content)} bytes)")
        try:
            root = ET.fromstring(decode(content))
        except ET.ParseError as exc:
            raise ParseError(f"invalid POM XML: {exc}") from exc

        ns = _NS if root.tag.startswith(_NS) else ""
        props = self._extract_properties(root, ns)

        elements: list[ET.Element] = []
        elements.extend(root.findall(f"{ns}dependencies/{ns}dependency"))
        elements.extend(root.findall(f"{ns}build/{ns}plugins/{ns}plugin"))
        elements.extend(
            root.findall(f"{ns}profiles/{ns}profile/{ns}build/{ns}plugins/{ns}plugin")
        )

        refs: list[PackageReference] = []
        for el in elements:
            group_id = _resolve_props(_text(el.find(f"{ns}groupId")), props)
            artifact_id = _resolve_props(_text(el.find(f"{ns}artifactId")), props)
            version = _resolve_props(_text(el.find(f"{ns}version")), props)
            if not artifact_id:
                continue
            name = f"{group_id}/{artifact_id}" if group_id else artifact_id
            refs.append(PackageReference(identifier=name, version_spec=version))

        return refs

    @staticmethod
    def _extract_properties(root: ET.Element, ns: str) -> dict[str, str]:
        props: dict[str, str] = {}
        props_el = root.find(f"{ns}properties")
        if props_el is not None:
            for child in props_el:
                if isinstance(child.tag, str) and child.text:
                    props[_local(child.tag)] = child.text.strip()
        return props
