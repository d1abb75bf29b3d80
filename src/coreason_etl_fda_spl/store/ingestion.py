# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""DLT resources loading the entity graph into the warehouse."""

from collections.abc import Iterator
from typing import Any

import dlt
from dlt.sources import DltResource
from loguru import logger

from coreason_etl_fda_spl.store.frames import store_frames, summary_frame
from coreason_etl_fda_spl.store.repository import EntityStore


def entity_resources(store: EntityStore) -> list[DltResource]:
    """
    One DLT resource per entity table.

    Tables are replaced on every run: the store already holds the
    deduplicated graph, so the warehouse mirrors it.

    Args:
        store: The populated entity store.

    Returns:
        Resources named after the entity kinds, keyed on the surrogate id.
    """
    resources = []
    for kind, frame in store_frames(store).items():
        if frame.is_empty():
            logger.debug(f"No rows for {kind.value}; loading an empty table")
        resources.append(
            dlt.resource(
                frame.iter_rows(named=True),
                name=kind.value,
                write_disposition="replace",
                primary_key="id",
            )
        )
    return resources


@dlt.resource(name="ingestion_summary", write_disposition="append")
def ingestion_summary_resource(store: EntityStore) -> Iterator[dict[str, Any]]:
    """
    DLT resource for per-table row counts of a run.

    Args:
        store: The populated entity store.

    Yields:
        One record per entity table.
    """
    yield from summary_frame(store).iter_rows(named=True)
