# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Builders for licenses and the disciplinary actions taken against them."""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import attribute, first_child, has_markup, text
from coreason_etl_fda_spl.config import SplConfig
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.models import DisciplinaryAction, License
from coreason_etl_fda_spl.utils.dates import parse_hl7_date
from coreason_etl_fda_spl.utils.logger import logger


def is_license_approval(approval: Element) -> bool:
    """Whether an ``approval`` element is a licensing approval (code C118777)."""
    code = attribute(first_child(approval, "code"), "code")
    return code is not None and code.upper() == SplConfig.LICENSE_APPROVAL_CODE


def build_license(approval: Element, ctx: ParseContext) -> Optional[License]:
    """
    Build a license from a licensing ``approval`` element.

    Args:
        approval: An approval element whose code is the licensing code.
        ctx: Current context.

    Returns:
        The candidate, or None when the approval is not a license or lacks its number.
    """
    if not is_license_approval(approval):
        return None

    id_el = first_child(approval, "id")
    number = attribute(id_el, "extension")
    root = attribute(id_el, "root")
    if number is None or root is None:
        logger.warning(f"Skipping license approval without id extension/root in document {ctx.document_id}")
        return None

    code_el = first_child(approval, "code")
    territory_el = first_child(approval, "author", "territorialAuthority", "territory", "code")
    return License.model_construct(
        license_number=number,
        license_root_oid=root,
        license_type_code=SplConfig.LICENSE_APPROVAL_CODE,
        license_type_code_system=attribute(code_el, "codeSystem"),
        license_type_display_name=attribute(code_el, "displayName"),
        status_code=attribute(first_child(approval, "statusCode"), "code"),
        expiration_date=parse_hl7_date(attribute(first_child(approval, "effectiveTime", "high"), "value")),
        territory_code=attribute(territory_el, "code"),
        territory_code_system=attribute(territory_el, "codeSystem"),
    )


def build_disciplinary_action(action: Element, ctx: ParseContext) -> Optional[DisciplinaryAction]:
    """
    Build a disciplinary action from an ``action`` element.

    Checks run in order: the action code must be present, an "other" action
    must carry plain descriptive text, then the effective time is read (a
    value without a full ``YYYYMMDD`` prefix is treated as absent). Each skip
    logs exactly one warning.

    Args:
        action: The action element under the license approval.
        ctx: Context holding the license.

    Returns:
        The candidate, or None when the action is skipped.
    """
    code_el = first_child(action, "code")
    code = attribute(code_el, "code")
    if code is None:
        logger.warning(f"Skipping disciplinary action without a code for license {ctx.license.id}")
        return None

    text_el = first_child(action, "text")
    action_text = text(text_el)
    if code == SplConfig.ACTION_OTHER:
        if action_text is None or has_markup(text_el) or "<" in action_text or ">" in action_text:
            logger.warning(f"Skipping 'other' disciplinary action without plain text for license {ctx.license.id}")
            return None

    return DisciplinaryAction.model_construct(
        license_id=ctx.license.id,
        action_code=code,
        action_code_system=attribute(code_el, "codeSystem"),
        action_display_name=attribute(code_el, "displayName"),
        effective_time=parse_hl7_date(attribute(first_child(action, "effectiveTime"), "value")),
        action_text=action_text,
    )
