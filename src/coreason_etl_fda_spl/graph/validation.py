# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Validation gate: declared field rules plus named cross-candidate business rules."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from coreason_etl_fda_spl.config import SplConfig
from coreason_etl_fda_spl.graph.models import GraphEntity, SpecializedKind
from coreason_etl_fda_spl.utils.logger import logger

COSMETIC_CONFLICT_REASON = "Conflicts with mutually exclusive code in SPL business rules."


def check_record(record: GraphEntity) -> list[str]:
    """
    Check a candidate against the field rules its model declares.

    Candidates are assembled without validation, so this re-runs the model's
    constraints and validators over the candidate's values.

    Args:
        record: The candidate entity.

    Returns:
        Human-readable violations; empty when the candidate is valid.
    """
    try:
        type(record).model_validate(dict(record))
    except ValidationError as e:
        messages = []
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            messages.append(f"{location}: {error['msg']}" if location else error["msg"])
        return messages
    return []


class RuleOutcome(BaseModel):
    """Result of a set-level rule: what passed and what was rejected, with why."""

    model_config = ConfigDict(frozen=True)

    accepted: list[SpecializedKind] = Field(default_factory=list)
    rejected: list[tuple[SpecializedKind, str]] = Field(default_factory=list)


def validate_cosmetic_categories(kinds: list[SpecializedKind], document_type_code: Optional[str]) -> RuleOutcome:
    """
    Enforce mutual exclusion between cosmetic product category codes.

    When both codes of an exclusive pair are present, the second code of the
    pair is rejected. Registration, amendment and renewal documents are exempt.

    Args:
        kinds: Every specialized kind collected for one product.
        document_type_code: LOINC type code of the enclosing document.

    Returns:
        The accepted kinds and the rejected kinds with their reasons.
    """
    if document_type_code and document_type_code in SplConfig.COSMETIC_EXEMPT_DOCUMENT_TYPES:
        return RuleOutcome(accepted=list(kinds))

    def is_cosmetic(kind: SpecializedKind) -> bool:
        return (kind.kind_code_system or "").lower() == SplConfig.COSMETIC_CATEGORY_CODE_SYSTEM

    present = {(k.kind_code or "").upper() for k in kinds if is_cosmetic(k)}
    removed: set[str] = set()
    for code_a, code_b in SplConfig.COSMETIC_EXCLUSIVE_PAIRS:
        if code_a in present and code_b in present:
            removed.add(code_b)
            logger.warning(
                f"Cosmetic category codes '{code_a}' and '{code_b}' are mutually exclusive "
                f"for document type '{document_type_code}'. Removing '{code_b}'."
            )

    accepted: list[SpecializedKind] = []
    rejected: list[tuple[SpecializedKind, str]] = []
    for kind in kinds:
        if is_cosmetic(kind) and (kind.kind_code or "").upper() in removed:
            rejected.append((kind, COSMETIC_CONFLICT_REASON))
        else:
            accepted.append(kind)
    return RuleOutcome(accepted=accepted, rejected=rejected)
