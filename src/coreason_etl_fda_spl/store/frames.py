# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Tabular views of the entity store using Polars."""

from decimal import Decimal
from enum import Enum
from typing import Any

import polars as pl

from coreason_etl_fda_spl.graph.models import ENTITY_MODELS, EntityKind, GraphEntity
from coreason_etl_fda_spl.store.repository import EntityStore, Repository


def _columns(model: type[GraphEntity]) -> list[str]:
    columns = []
    for name in model.model_fields:
        if name == "owner":
            columns.extend(["owner_kind", "owner_id"])
        else:
            columns.append(name)
    return columns


def _row(record: GraphEntity) -> dict[str, Any]:
    """Flatten one record: nested owner split into two columns, enums to values, decimals to floats."""
    row: dict[str, Any] = {}
    for name, value in record.model_dump().items():
        if name == "owner":
            row["owner_kind"] = value["kind"].value
            row["owner_id"] = value["entity_id"]
        elif isinstance(value, Enum):
            row[name] = value.value
        elif isinstance(value, Decimal):
            row[name] = float(value)
        else:
            row[name] = value
    return row


def to_frame(kind: EntityKind, repository: Repository[Any]) -> pl.DataFrame:
    """
    Build a DataFrame with one row per stored record.

    Args:
        kind: Entity kind held by the repository.
        repository: The repository to export.

    Returns:
        DataFrame whose columns follow the model's fields (owner flattened).
    """
    columns = _columns(ENTITY_MODELS[kind])
    rows = [_row(record) for record in repository.query_all()]
    return pl.DataFrame({column: [row.get(column) for row in rows] for column in columns})


def store_frames(store: EntityStore) -> dict[EntityKind, pl.DataFrame]:
    """Export every repository of the store."""
    return {kind: to_frame(kind, repository) for kind, repository in store.repositories().items()}


def summary_frame(store: EntityStore) -> pl.DataFrame:
    """Row counts per table."""
    repositories = store.repositories()
    return pl.DataFrame(
        {
            "table": [kind.value for kind in repositories],
            "rows": [len(repository.query_all()) for repository in repositories.values()],
        }
    )
