"""Reading and rewriting the ``Version.Details.xml`` dependency manifest."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from logging import getLogger
from typing import TYPE_CHECKING, Final

from depflow.domain.model import DependencyDetail, DependencyType

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)

ROOT_ELEMENT: Final[str] = "Dependencies"
SECTIONS: Final[dict[DependencyType, str]] = {
    DependencyType.PRODUCT: "ProductDependencies",
    DependencyType.TOOLSET: "ToolsetDependencies",
}
DEPENDENCY_ELEMENT: Final[str] = "Dependency"
URI_ELEMENT: Final[str] = "Uri"
SHA_ELEMENT: Final[str] = "Sha"

NAME_ATTRIBUTE: Final[str] = "Name"
VERSION_ATTRIBUTE: Final[str] = "Version"
PINNED_ATTRIBUTE: Final[str] = "Pinned"
COHERENT_PARENT_ATTRIBUTE: Final[str] = "CoherentParentDependency"
COMMON_CHILD_ATTRIBUTE: Final[str] = "CommonChildDependency"


class ManifestFormatError(ValueError):
    """Raised when a dependency manifest cannot be parsed."""


def _text(element: ET.Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _parse_root(content: str) -> ET.Element:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ManifestFormatError(f"Malformed dependency manifest: {exc}") from exc
    if root.tag != ROOT_ELEMENT:
        raise ManifestFormatError(f"Expected <{ROOT_ELEMENT}> root, got <{root.tag}>")
    return root


def parse_manifest(content: str) -> list[DependencyDetail]:
    root = _parse_root(content)
    dependencies: list[DependencyDetail] = []
    for dependency_type, section_name in SECTIONS.items():
        section = root.find(section_name)
        if section is None:
            continue
        for element in section.iter(DEPENDENCY_ELEMENT):
            name = element.get(NAME_ATTRIBUTE)
            if not name:
                log.warning("Skipping manifest entry without a name in %s", section_name)
                continue
            dependencies.append(
                DependencyDetail(
                    name=name,
                    version=element.get(VERSION_ATTRIBUTE, ""),
                    repo_uri=_text(element.find(URI_ELEMENT)),
                    commit=_text(element.find(SHA_ELEMENT)),
                    pinned=element.get(PINNED_ATTRIBUTE, "").casefold() == "true",
                    type=dependency_type,
                    coherent_parent_dependency_name=element.get(COHERENT_PARENT_ATTRIBUTE) or None,
                    common_child_dependency_name=element.get(COMMON_CHILD_ATTRIBUTE) or None,
                )
            )
    return dependencies


def _set_child_text(element: ET.Element, tag: str, value: str) -> None:
    child = element.find(tag)
    if child is None:
        child = ET.SubElement(element, tag)
    child.text = value


def apply_updates(content: str, updates: Iterable[DependencyDetail]) -> str:
    """Return ``content`` with the version, uri and sha of every updated entry replaced.

    Entries are matched by name, case-insensitively; unknown names are appended to
    the section of their dependency type.
    """

    root = _parse_root(content)
    elements: dict[str, ET.Element] = {}
    for element in root.iter(DEPENDENCY_ELEMENT):
        name = element.get(NAME_ATTRIBUTE)
        if name:
            elements[name.casefold()] = element

    for dependency in updates:
        element = elements.get(dependency.key)
        if element is None:
            section_name = SECTIONS[dependency.type]
            section = root.find(section_name)
            if section is None:
                section = ET.SubElement(root, section_name)
            element = ET.SubElement(section, DEPENDENCY_ELEMENT, {NAME_ATTRIBUTE: dependency.name})
            elements[dependency.key] = element
        element.set(VERSION_ATTRIBUTE, dependency.version)
        _set_child_text(element, URI_ELEMENT, dependency.repo_uri)
        _set_child_text(element, SHA_ELEMENT, dependency.commit)

    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="utf-8"?>\n{body}\n'
