# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Builders for product identity: item codes, equivalences and specialized kinds."""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import all_children, attribute, descendants, first_child
from coreason_etl_fda_spl.config import SplConfig
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.models import EquivalentEntity, ProductIdentifier, SpecializedKind
from coreason_etl_fda_spl.utils.logger import logger

EQUIVALENCE_CLASS_CODE = "EQUIV"


def infer_identifier_type(oid: Optional[str]) -> Optional[str]:
    """Map a code system OID to a label such as ``NDC`` or ``GS1``; None when unknown."""
    if not oid:
        return None
    return SplConfig.IDENTIFIER_TYPES.get(oid)


def product_code_elements(entity: Element) -> list[Element]:
    """The product's own ``code`` followed by every nested container's ``code``, in document order."""
    codes = []
    own = first_child(entity, "code")
    if own is not None:
        codes.append(own)
    for container in descendants(entity, "containerPackagedProduct"):
        code = first_child(container, "code")
        if code is not None:
            codes.append(code)
    return codes


def build_product_identifiers(entity: Element, ctx: ParseContext) -> list[ProductIdentifier]:
    """
    Build one identifier per code element of the product subtree.

    ``source_index`` records the ordinal of the code element, so equal values
    taken from distinct elements remain distinct identifiers.

    Args:
        entity: Inner manufacturedProduct element.
        ctx: Context holding the product.

    Returns:
        Unvalidated ProductIdentifier candidates.
    """
    candidates = []
    for index, code_el in enumerate(product_code_elements(entity)):
        value = attribute(code_el, "code")
        oid = attribute(code_el, "codeSystem")
        if value is None or oid is None:
            logger.debug(f"Skipping code element #{index} without value or system for product {ctx.product.id}")
            continue
        candidates.append(
            ProductIdentifier.model_construct(
                product_id=ctx.product.id,
                identifier_value=value,
                identifier_system_oid=oid,
                identifier_type=infer_identifier_type(oid),
                source_index=index,
            )
        )
    return candidates


def build_equivalent_entities(entity: Element, ctx: ParseContext) -> list[EquivalentEntity]:
    """Build equivalences from ``asEquivalentEntity`` elements (class ``EQUIV`` or unspecified)."""
    candidates = []
    for equivalent_el in all_children(entity, "asEquivalentEntity"):
        class_code = attribute(equivalent_el, "classCode")
        if class_code is not None and class_code.upper() != EQUIVALENCE_CLASS_CODE:
            continue

        code_el = first_child(equivalent_el, "code")
        material_el = first_child(equivalent_el, "definingMaterialKind", "code")
        if attribute(code_el, "code") is None and attribute(material_el, "code") is None:
            logger.warning(f"Skipping asEquivalentEntity without any code for product {ctx.product.id}")
            continue

        candidates.append(
            EquivalentEntity.model_construct(
                product_id=ctx.product.id,
                equivalence_code=attribute(code_el, "code"),
                equivalence_code_system=attribute(code_el, "codeSystem"),
                defining_material_kind_code=attribute(material_el, "code"),
                defining_material_kind_system=attribute(material_el, "codeSystem"),
            )
        )
    return candidates


def build_specialized_kinds(entity: Element, ctx: ParseContext) -> list[SpecializedKind]:
    """Collect every ``asSpecializedKind/generalizedMaterialKind/code`` of a product."""
    candidates = []
    for kind_el in all_children(entity, "asSpecializedKind"):
        code_el = first_child(kind_el, "generalizedMaterialKind", "code")
        code = attribute(code_el, "code")
        system = attribute(code_el, "codeSystem")
        if code is None or system is None:
            logger.warning(f"Skipping asSpecializedKind without code or code system for product {ctx.product.id}")
            continue
        candidates.append(
            SpecializedKind.model_construct(
                product_id=ctx.product.id,
                kind_code=code,
                kind_code_system=system,
                kind_display_name=attribute(code_el, "displayName"),
            )
        )
    return candidates
