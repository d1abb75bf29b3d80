# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Helpers for HL7 v3 timestamp values."""

import re
from datetime import date, datetime
from typing import Optional

_DATE_PREFIX = re.compile(r"^(\d{8})")


def parse_hl7_date(value: Optional[str]) -> Optional[date]:
    """
    Parse an HL7 ``TS`` value (``YYYYMMDD[HHMMSS[.ffff]][+ZZZZ]``) to a date.

    Only the leading eight digits are considered; anything shorter, or a
    calendar-invalid day, yields None.

    Args:
        value: Raw ``value`` attribute from an ``effectiveTime`` element.

    Returns:
        The calendar date, or None if the value cannot be read.
    """
    if not value:
        return None

    match = _DATE_PREFIX.match(value.strip())
    if not match:
        return None

    try:
        return datetime.strptime(match.group(1), "%Y%m%d").date()
    except ValueError:
        return None
