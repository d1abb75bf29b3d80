# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Entry point for the FDA SPL entity-graph ETL pipeline."""

import argparse
import os
import sys
from pathlib import Path

import dlt
from loguru import logger

from coreason_etl_fda_spl.config import ParseSettings, ReturnedEventDatePolicy, SplConfig
from coreason_etl_fda_spl.exceptions import SplEtlError
from coreason_etl_fda_spl.graph.orchestrator import SplGraphOrchestrator
from coreason_etl_fda_spl.graph.result import ParseResult
from coreason_etl_fda_spl.source import SplDocumentSource
from coreason_etl_fda_spl.store.ingestion import entity_resources, ingestion_summary_resource


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="FDA SPL Entity Graph ETL Pipeline")
    parser.add_argument(
        "--input-dir",
        type=Path,
        default=SplConfig.DEFAULT_INPUT_DIR,
        help="Directory containing SPL XML documents",
    )
    parser.add_argument(
        "--destination",
        type=str,
        default=SplConfig.DEFAULT_DESTINATION,
        help="DLT destination for the entity tables",
    )
    parser.add_argument(
        "--dataset",
        type=str,
        default=SplConfig.DEFAULT_DATASET,
        help="Dataset (schema) name in the destination",
    )
    parser.add_argument(
        "--returned-event-dates",
        type=str,
        choices=[policy.value for policy in ReturnedEventDatePolicy],
        default=None,
        help="Drop the date of returned product events (default) or reject such events",
    )
    return parser.parse_args(args)


def setup_logging() -> None:
    """Configure logging based on environment variables."""
    logger.remove()
    logger.add(sys.stderr, level=os.getenv("LOG_LEVEL", "INFO"))


def run_pipeline(
    input_dir: Path,
    destination: str = SplConfig.DEFAULT_DESTINATION,
    dataset: str = SplConfig.DEFAULT_DATASET,
    settings: ParseSettings | None = None,
) -> ParseResult:
    """
    Build the entity graph from every SPL document and load it.

    A document that cannot be read is logged and skipped; the remaining
    documents are still ingested. A file whose bytes match an already
    ingested file is skipped with a warning.

    Args:
        input_dir: Directory holding the SPL XML files.
        destination: DLT destination name.
        dataset: Dataset name in the destination.
        settings: Parse settings; read from the environment when omitted.

    Returns:
        The merged result of all documents.
    """
    logger.info("Step 1: Resolving SPL documents...")
    source = SplDocumentSource(input_dir)
    documents = source.resolve_documents()

    logger.info("Step 2: Building the entity graph...")
    orchestrator = SplGraphOrchestrator(settings=settings or ParseSettings.from_env())
    total = ParseResult()
    ingested: dict[str, str] = {}
    for path in documents:
        try:
            document = source.load_document(path)
        except SplEtlError as e:
            logger.error(f"Skipping {path.name}: {e}")
            total.add_error(f"{path.name}: {e}")
            continue

        duplicate_of = ingested.get(document.content_hash)
        if duplicate_of is not None:
            logger.warning(f"Skipping {path.name}: same content as {duplicate_of}")
            total.add_warning(f"{path.name}: same content as {duplicate_of}")
            continue
        ingested[document.content_hash] = path.name
        total.merge(orchestrator.ingest_document(document.root))

    logger.info(
        f"Graph built from {len(documents)} documents: created={total.total_created} "
        f"errors={len(total.errors)} rejected={len(total.warnings)}"
    )

    logger.info("Step 3: Loading entity tables...")
    pipeline = dlt.pipeline(
        pipeline_name=SplConfig.PIPELINE_NAME,
        destination=destination,
        dataset_name=dataset,
        progress="log",
    )
    load_info = pipeline.run(entity_resources(orchestrator.store) + [ingestion_summary_resource(orchestrator.store)])
    logger.info(f"Load Info: {load_info}")

    logger.info("Pipeline completed successfully.")
    return total


def main(args: list[str] | None = None) -> None:
    """Main entry point for the pipeline."""
    setup_logging()
    parsed_args = parse_args(args)

    logger.info("Starting FDA SPL Entity Graph ETL Pipeline")

    try:
        settings = ParseSettings.from_env()
        if parsed_args.returned_event_dates is not None:
            settings = ParseSettings(returned_event_dates=ReturnedEventDatePolicy(parsed_args.returned_event_dates))
        run_pipeline(parsed_args.input_dir, parsed_args.destination, parsed_args.dataset, settings)
    except Exception as e:
        logger.error(f"Pipeline failed: {e}")
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
