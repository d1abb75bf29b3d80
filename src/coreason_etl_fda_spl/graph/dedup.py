# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Get-or-create deduplication with upgrade-in-place, and the save protocol built on it."""

from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from coreason_etl_fda_spl.graph.models import GraphEntity, MarketingStatus
from coreason_etl_fda_spl.graph.result import ParseResult
from coreason_etl_fda_spl.graph.validation import check_record
from coreason_etl_fda_spl.store.repository import BASE_KEY_INDEX, NATURAL_KEY_INDEX, Repository
from coreason_etl_fda_spl.utils.logger import logger

E = TypeVar("E", bound=GraphEntity)


class ResolutionAction(str, Enum):
    CREATE = "create"
    EXISTING = "existing"
    UPGRADE = "upgrade"


class Resolution(BaseModel):
    """What to do with a candidate, and the stored record it matched (if any)."""

    model_config = ConfigDict(frozen=True)

    action: ResolutionAction
    existing: Optional[GraphEntity] = None


def resolve_marketing_status(candidate: MarketingStatus, repository: Repository[MarketingStatus]) -> Resolution:
    """
    Match a marketing status, allowing a product-level record to be upgraded.

    Records sharing the candidate's base key (product, act code and system,
    status, dates) are fetched from the base-key index, then:

    - a candidate without a packaging level matches any of them;
    - a candidate with a packaging level matches a record on the same level,
      otherwise claims a record whose packaging level is still unset (UPGRADE);
    - anything else is created.

    Args:
        candidate: The validated candidate.
        repository: Marketing status repository exposing the base-key index.

    Returns:
        The resolution.
    """
    bucket = repository.find(BASE_KEY_INDEX, candidate.base_key())
    if candidate.packaging_level_id is None:
        if bucket:
            return Resolution(action=ResolutionAction.EXISTING, existing=bucket[0])
        return Resolution(action=ResolutionAction.CREATE)

    for record in bucket:
        if record.packaging_level_id == candidate.packaging_level_id:
            return Resolution(action=ResolutionAction.EXISTING, existing=record)
    for record in bucket:
        if record.packaging_level_id is None:
            return Resolution(action=ResolutionAction.UPGRADE, existing=record)
    return Resolution(action=ResolutionAction.CREATE)


def resolve(candidate: GraphEntity, repository: Repository[Any]) -> Resolution:
    """
    Decide whether ``candidate`` is new or already stored.

    Args:
        candidate: The validated candidate.
        repository: Repository for the candidate's kind.

    Returns:
        CREATE, EXISTING (with the match) or, for marketing statuses only, UPGRADE.
    """
    if isinstance(candidate, MarketingStatus):
        return resolve_marketing_status(candidate, repository)

    matches = repository.find(NATURAL_KEY_INDEX, candidate.natural_key())
    if matches:
        return Resolution(action=ResolutionAction.EXISTING, existing=matches[0])
    return Resolution(action=ResolutionAction.CREATE)


def _refreshed(existing: E, candidate: E) -> Optional[E]:
    changes = {
        name: getattr(candidate, name)
        for name in existing.refresh_fields
        if getattr(candidate, name) is not None and getattr(candidate, name) != getattr(existing, name)
    }
    if not changes:
        return None
    return existing.model_copy(update=changes)


def save_entity(candidate: E, repository: Repository[E], result: ParseResult) -> Optional[E]:
    """
    Run a candidate through the validation gate and the resolver, then persist it.

    Rejections are logged and recorded as warnings; persistence failures are
    logged with the entity kind and key fields and recorded as errors. Neither
    propagates.

    Args:
        candidate: Entity assembled by a builder.
        repository: Repository for the candidate's kind.
        result: Result receiving counters and diagnostics.

    Returns:
        The stored (created, matched or upgraded) record, or None if the
        candidate was rejected or could not be persisted.
    """
    kind = candidate.kind.value
    violations = check_record(candidate)
    if violations:
        message = f"Rejected {kind} ({candidate.key_summary()}): {'; '.join(violations)}"
        logger.warning(message)
        result.add_warning(message)
        return None

    try:
        resolution = resolve(candidate, repository)
        if resolution.action is ResolutionAction.CREATE:
            stored = repository.create(candidate)
            result.record_created(candidate.kind)
            logger.debug(f"Created {kind} id={stored.id} ({stored.key_summary()})")
            return stored

        existing = resolution.existing
        if resolution.action is ResolutionAction.UPGRADE:
            upgraded = existing.model_copy(update={"packaging_level_id": candidate.packaging_level_id})
            stored = repository.update(upgraded)
            result.record_updated(candidate.kind)
            logger.debug(f"Upgraded {kind} id={stored.id} to packaging level {stored.packaging_level_id}")
            return stored

        refreshed = _refreshed(existing, candidate)
        if refreshed is None:
            return existing
        stored = repository.update(refreshed)
        result.record_updated(candidate.kind)
        logger.debug(f"Refreshed {kind} id={stored.id} ({stored.key_summary()})")
        return stored
    except Exception as e:
        message = f"Failed to persist {kind} ({candidate.key_summary()}): {e}"
        logger.error(message)
        result.add_error(message)
        return None
