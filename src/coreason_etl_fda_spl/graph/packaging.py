# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Recursive traversal of the nested ``asContent/containerPackagedProduct`` hierarchy."""

from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import all_children, attribute, first_child
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.dedup import save_entity
from coreason_etl_fda_spl.graph.models import EntityKind, PackagingLevel, Product
from coreason_etl_fda_spl.graph.result import ParseResult
from coreason_etl_fda_spl.utils.logger import logger

Dispatch = Callable[[str, Element, ParseContext], ParseResult]


def _decimal(value: Optional[str]) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        logger.warning(f"Ignoring non-numeric packaging quantity {value!r}")
        return None


def build_packaging_level(
    as_content: Element,
    product: Optional[Product],
    parent_packaging_level_id: Optional[int] = None,
    sequence_number: Optional[int] = None,
    product_instance_id: Optional[int] = None,
) -> PackagingLevel:
    """
    Assemble a PackagingLevel from one ``asContent`` element.

    Only the outermost level (no parent level and no product instance) is
    linked to the product; nested levels point at their parent.
    """
    container = first_child(as_content, "containerPackagedProduct")
    quantity = first_child(as_content, "quantity")
    numerator = first_child(quantity, "numerator")
    code_el = first_child(container, "code")
    form_el = first_child(container, "formCode")
    outermost = parent_packaging_level_id is None and product_instance_id is None

    return PackagingLevel.model_construct(
        product_id=product.id if outermost and product is not None else None,
        parent_packaging_level_id=parent_packaging_level_id,
        product_instance_id=product_instance_id,
        sequence_number=sequence_number,
        quantity_numerator=_decimal(attribute(numerator, "value")),
        quantity_numerator_unit=attribute(numerator, "unit"),
        quantity_denominator=_decimal(attribute(first_child(quantity, "denominator"), "value")),
        package_code=attribute(code_el, "code"),
        package_code_system=attribute(code_el, "codeSystem"),
        package_form_code=attribute(form_el, "code"),
        package_form_code_system=attribute(form_el, "codeSystem"),
        package_form_display_name=attribute(form_el, "displayName"),
    )


class PackagingWalker:
    """Persists every packaging level of a product, parents before children."""

    def __init__(self, dispatch: Dispatch) -> None:
        """
        Args:
            dispatch: Routes per-level children (product events, marketing statuses)
                to their parsers with error isolation.
        """
        self.dispatch = dispatch

    def walk(
        self,
        as_content: Element,
        product: Optional[Product],
        ctx: ParseContext,
        result: ParseResult,
        parent_packaging_level_id: Optional[int] = None,
        sequence_number: Optional[int] = None,
        product_instance_id: Optional[int] = None,
    ) -> int:
        """
        Save one packaging level, its events and statuses, then recurse into nested content.

        Args:
            as_content: The ``asContent`` element describing this level.
            product: Owning product (linked only at the outermost level).
            ctx: Caller's context; it is not modified.
            result: Result receiving counters and diagnostics.
            parent_packaging_level_id: Id of the enclosing level, if nested.
            sequence_number: 1-based position among siblings.
            product_instance_id: Lot instance this packaging belongs to, if any.

        Returns:
            Number of packaging levels created in this subtree.
        """
        candidate = build_packaging_level(
            as_content, product, parent_packaging_level_id, sequence_number, product_instance_id
        )
        before = result.created_count(EntityKind.PACKAGING_LEVEL)
        level = save_entity(candidate, ctx.store.packaging_levels, result)
        if level is None:
            return 0
        created = result.created_count(EntityKind.PACKAGING_LEVEL) - before

        level_ctx = ctx.with_packaging_level(level)
        container = first_child(as_content, "containerPackagedProduct")

        for subject_of in all_children(container, "subjectOf") + all_children(as_content, "subjectOf"):
            if first_child(subject_of, "productEvent") is not None:
                result.merge(self.dispatch("productEvent", subject_of, level_ctx))
        for marketing_act in all_children(as_content, "subjectOf", "marketingAct"):
            result.merge(self.dispatch("marketingStatus", marketing_act, level_ctx))

        for index, nested in enumerate(all_children(container, "asContent"), start=1):
            created += self.walk(
                nested,
                product,
                level_ctx,
                result,
                parent_packaging_level_id=level.id,
                sequence_number=index,
                product_instance_id=product_instance_id,
            )
        return created
