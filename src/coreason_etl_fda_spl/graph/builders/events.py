# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Builder for lot distribution product events."""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import attribute, first_child
from coreason_etl_fda_spl.config import ReturnedEventDatePolicy, SplConfig
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.models import ProductEvent
from coreason_etl_fda_spl.utils.dates import parse_hl7_date
from coreason_etl_fda_spl.utils.logger import logger


def _quantity(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer product event quantity {value!r}")
        return None


def build_product_event(subject_of: Element, ctx: ParseContext) -> Optional[ProductEvent]:
    """
    Build a product event from a ``subjectOf`` element holding ``quantity`` and ``productEvent``.

    A returned-units event carries no date. If the source gives one anyway it
    is dropped under the ``drop`` policy, or kept under ``reject`` so the
    validation gate turns the event down.

    Args:
        subject_of: The subjectOf element wrapping the event.
        ctx: Context holding the packaging level.

    Returns:
        The candidate, or None if the element holds no recognized product event.
    """
    event_el = first_child(subject_of, "productEvent")
    if event_el is None:
        return None

    code_el = first_child(event_el, "code")
    event_code = attribute(code_el, "code")
    if event_code not in SplConfig.EVENT_DISPLAY_NAMES:
        logger.debug(f"Skipping product event with code {event_code}")
        return None

    quantity_el = first_child(subject_of, "quantity")
    effective = parse_hl7_date(attribute(first_child(event_el, "effectiveTime", "low"), "value"))
    if (
        event_code == SplConfig.EVENT_RETURNED
        and effective is not None
        and ctx.settings.returned_event_dates is ReturnedEventDatePolicy.DROP
    ):
        logger.warning(f"Dropping effective date {effective} from returned event on packaging level {ctx.packaging_level.id}")
        effective = None

    # Read raw: an empty unit ("") is a valid count unit and must not collapse to None
    unit = quantity_el.get("unit") if quantity_el is not None else None
    return ProductEvent.model_construct(
        packaging_level_id=ctx.packaging_level.id,
        event_code=event_code,
        event_code_system=attribute(code_el, "codeSystem"),
        event_display_name=attribute(code_el, "displayName"),
        quantity_value=_quantity(attribute(quantity_el, "value")),
        quantity_unit=unit.strip() if unit is not None else None,
        effective_time_low=effective,
    )
