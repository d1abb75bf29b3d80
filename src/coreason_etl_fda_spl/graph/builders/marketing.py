# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Builders for marketing categories, marketing statuses and DEA policies."""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import attribute, first_child
from coreason_etl_fda_spl.config import SplConfig
from coreason_etl_fda_spl.graph.context import ParseContext, resolve_association
from coreason_etl_fda_spl.graph.models import MarketingCategory, MarketingStatus, Policy
from coreason_etl_fda_spl.utils.dates import parse_hl7_date
from coreason_etl_fda_spl.utils.logger import logger


def build_marketing_category(approval: Element, ctx: ParseContext) -> Optional[MarketingCategory]:
    """
    Build a marketing category from a product's ``subjectOf/approval`` element.

    Args:
        approval: The approval element.
        ctx: Context holding the product.

    Returns:
        The candidate, or None when the approval carries no category code.
    """
    code_el = first_child(approval, "code")
    code = attribute(code_el, "code")
    if code is None:
        logger.warning(f"Skipping approval without a marketing category code for product {ctx.product.id}")
        return None

    id_el = first_child(approval, "id")
    return MarketingCategory.model_construct(
        product_id=ctx.product.id,
        category_code=code,
        category_code_system=attribute(code_el, "codeSystem"),
        category_display_name=attribute(code_el, "displayName"),
        application_or_monograph_id_value=attribute(id_el, "extension"),
        application_or_monograph_id_oid=attribute(id_el, "root"),
        approval_date=parse_hl7_date(attribute(first_child(approval, "effectiveTime", "low"), "value")),
        territory_code=attribute(first_child(approval, "author", "territorialAuthority", "territory", "code"), "code"),
    )


def build_marketing_status(marketing_act: Element, ctx: ParseContext) -> Optional[MarketingStatus]:
    """
    Build a marketing status from a ``marketingAct`` element.

    Ownership follows the association rule: a packaging level in the context
    always gets the status, and the product is linked too when present.
    Acts outside the FDA SPL code system, or with an unknown status, are not
    marketing statuses and are skipped without error.

    Args:
        marketing_act: The marketingAct element.
        ctx: Context holding a product, a packaging level, or both.

    Returns:
        The candidate, or None when the act is not a marketing status.
    """
    code_el = first_child(marketing_act, "code")
    act_code = attribute(code_el, "code")
    act_system = attribute(code_el, "codeSystem")
    status = attribute(first_child(marketing_act, "statusCode"), "code")

    if act_system != SplConfig.FDA_SPL_CODE_SYSTEM:
        logger.debug(f"Skipping marketingAct {act_code} with code system {act_system}")
        return None
    if status is None or status.lower() not in SplConfig.MARKETING_STATUS_CODES:
        logger.debug(f"Skipping marketingAct {act_code} with status {status}")
        return None

    product_id, packaging_level_id = resolve_association(ctx)
    effective_el = first_child(marketing_act, "effectiveTime")
    return MarketingStatus.model_construct(
        product_id=product_id,
        packaging_level_id=packaging_level_id,
        marketing_act_code=act_code,
        marketing_act_code_system=act_system,
        status_code=status.lower(),
        effective_start_date=parse_hl7_date(attribute(first_child(effective_el, "low"), "value")),
        effective_end_date=parse_hl7_date(attribute(first_child(effective_el, "high"), "value")),
    )


def build_policy(policy: Element, ctx: ParseContext) -> Optional[Policy]:
    """Build a DEA schedule policy from a ``subjectOf/policy`` element."""
    code_el = first_child(policy, "code")
    if code_el is None:
        logger.warning(f"Skipping policy without a code element for product {ctx.product.id}")
        return None

    return Policy.model_construct(
        product_id=ctx.product.id,
        policy_class_code=attribute(policy, "classCode"),
        policy_code=attribute(code_el, "code"),
        policy_code_system=attribute(code_el, "codeSystem"),
        policy_display_name=attribute(code_el, "displayName"),
    )
