# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Builders for Product and GenericMedicine candidates."""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import all_children, attribute, first_child, text
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.models import GenericMedicine, Product
from coreason_etl_fda_spl.utils.logger import logger


def _product_name(name_el: Optional[Element]) -> Optional[str]:
    # <name>Brand<suffix>XR</suffix></name>: only the leading text is the name
    if name_el is None or name_el.text is None:
        return None
    return " ".join(name_el.text.split()) or None


def build_product(entity: Element, ctx: ParseContext) -> Product:
    """
    Assemble a Product from the inner ``manufacturedProduct`` entity element.

    Args:
        entity: The entity element (child of the manufacturedProduct role).
        ctx: Context holding the document and section ids and the position
            of the product within its section.

    Returns:
        An unvalidated Product candidate.
    """
    name_el = first_child(entity, "name")
    form_el = first_child(entity, "formCode")
    return Product.model_construct(
        document_id=ctx.document_id,
        section_id=ctx.section_id,
        sequence_number=ctx.product_sequence_number,
        product_name=_product_name(name_el),
        product_suffix=text(first_child(name_el, "suffix")),
        form_code=attribute(form_el, "code"),
        form_code_system=attribute(form_el, "codeSystem"),
        form_display_name=attribute(form_el, "displayName"),
        description_text=text(first_child(entity, "desc")),
    )


def build_generic_medicines(entity: Element, ctx: ParseContext) -> list[GenericMedicine]:
    """Collect generic (and phonetic) names from ``asEntityWithGeneric/genericMedicine``."""
    candidates = []
    for generic_el in all_children(entity, "asEntityWithGeneric", "genericMedicine"):
        generic_name = None
        phonetic_name = None
        for name_el in all_children(generic_el, "name"):
            if (attribute(name_el, "use") or "").upper() == "PHON":
                phonetic_name = phonetic_name or text(name_el)
            else:
                generic_name = generic_name or text(name_el)

        if generic_name is None and phonetic_name is None:
            logger.warning(f"Skipping genericMedicine without a name for product {ctx.product.id}")
            continue

        candidates.append(
            GenericMedicine.model_construct(
                product_id=ctx.product.id,
                generic_name=generic_name,
                phonetic_name=phonetic_name,
            )
        )
    return candidates
