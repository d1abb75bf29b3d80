# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""
Namespace-aware element and attribute access for SPL documents.

Paths are given as bare HL7 local names (``"subjectOf", "approval", "code"``);
the ``urn:hl7-org:v3`` namespace is applied here so no caller spells it out.
Every accessor tolerates a ``None`` node and answers with ``None`` or an empty
list, which lets builders chain lookups without guarding each step.
"""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.config import SplConfig

NS: dict[str, str] = {"hl7": SplConfig.HL7_NAMESPACE}


def _path(names: tuple[str, ...]) -> str:
    return "/".join(f"hl7:{name}" for name in names)


def local_name(node: Element) -> str:
    """Return the tag of ``node`` without its namespace."""
    tag = node.tag
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else ""


def first_child(node: Optional[Element], *path: str) -> Optional[Element]:
    """Return the first element reached by following ``path`` from ``node``."""
    if node is None or not path:
        return node
    return node.find(_path(path), NS)


def all_children(node: Optional[Element], *path: str) -> list[Element]:
    """Return every element reached by following ``path`` from ``node``, in document order."""
    if node is None or not path:
        return []
    return node.findall(_path(path), NS)


def descendants(node: Optional[Element], name: str) -> list[Element]:
    """Return every descendant of ``node`` named ``name`` (document order, ``node`` excluded)."""
    if node is None:
        return []
    return node.findall(f".//hl7:{name}", NS)


def attribute(node: Optional[Element], name: str) -> Optional[str]:
    """
    Return a stripped attribute value, or None when absent or blank.

    Args:
        node: The element to read from.
        name: Un-namespaced attribute name (``code``, ``codeSystem``...).

    Returns:
        The attribute text, or None.
    """
    if node is None:
        return None
    value = node.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def text(node: Optional[Element]) -> Optional[str]:
    """Return the concatenated, whitespace-normalized text content of ``node``."""
    if node is None:
        return None
    content = " ".join(" ".join(node.itertext()).split())
    return content or None


def has_markup(node: Optional[Element]) -> bool:
    """Whether ``node`` carries child elements (mixed content) rather than plain text."""
    return node is not None and len(node) > 0
