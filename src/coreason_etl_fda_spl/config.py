# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Configuration module for the FDA SPL entity-graph ETL."""

import os
from enum import Enum
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field


class SplConfig:
    """Configuration constants for the FDA SPL pipeline."""

    # Source Definition
    DEFAULT_INPUT_DIR: Final[Path] = Path("data/spl")
    FILE_GLOB: Final[str] = "*.xml"

    # Loading
    PIPELINE_NAME: Final[str] = "fda_spl"
    DEFAULT_DESTINATION: Final[str] = "postgresql"
    DEFAULT_DATASET: Final[str] = "spl_graph"

    # XML
    HL7_NAMESPACE: Final[str] = "urn:hl7-org:v3"

    # Code systems
    FDA_SPL_CODE_SYSTEM: Final[str] = "2.16.840.1.113883.3.26.1.1"
    COSMETIC_CATEGORY_CODE_SYSTEM: Final[str] = "2.16.840.1.113883.6.303"

    # Marketing
    MARKETING_STATUS_CODES: Final[frozenset[str]] = frozenset({"active", "completed", "new", "cancelled"})
    POLICY_CLASS_CODE: Final[str] = "DEADrugSchedule"

    # Product (lot distribution) events
    EVENT_DISTRIBUTED: Final[str] = "C106325"
    EVENT_RETURNED: Final[str] = "C106328"
    EVENT_DISPLAY_NAMES: Final[dict[str, str]] = {
        EVENT_DISTRIBUTED: "Distributed per reporting interval",
        EVENT_RETURNED: "Returned",
    }
    EVENT_QUANTITY_UNITS: Final[frozenset[str]] = frozenset({"1", ""})

    # Licensing
    LICENSE_APPROVAL_CODE: Final[str] = "C118777"
    ACTION_SUSPENSION: Final[str] = "C118406"
    ACTION_REVOKED: Final[str] = "C118407"
    ACTION_ACTIVATION: Final[str] = "C118408"
    ACTION_RESOLVED: Final[str] = "C118471"
    ACTION_OTHER: Final[str] = "C118472"
    ACTION_DISPLAY_NAMES: Final[dict[str, str]] = {
        ACTION_SUSPENSION: "suspension",
        ACTION_REVOKED: "revoked",
        ACTION_ACTIVATION: "activation",
        ACTION_RESOLVED: "resolved",
        ACTION_OTHER: "other",
    }

    # Attached documents
    MAX_FILE_NAME_LENGTH: Final[int] = 255
    PDF_MEDIA_TYPE: Final[str] = "application/pdf"

    # Cosmetic category rules
    COSMETIC_EXEMPT_DOCUMENT_TYPES: Final[frozenset[str]] = frozenset({"103573-2", "X8888-1", "X8888-4"})
    COSMETIC_EXCLUSIVE_PAIRS: Final[tuple[tuple[str, str], ...]] = (
        ("01D1", "01D2"),
        ("06A1", "06A2"),
        ("06F1", "06F2"),
        ("06I1", "06I2"),
        ("07C1", "07C2"),
        ("07D1", "07D2"),
        ("07I1", "07I2"),
        ("12D1", "12D2"),
        ("12F1", "12F2"),
        ("14C1", "14C2"),
        ("14D1", "14D2"),
        ("14J1", "14J2"),
    )

    # Identifier type inference (OID -> label)
    IDENTIFIER_TYPES: Final[dict[str, str]] = {
        "2.16.840.1.113883.6.69": "NDC",
        "2.16.840.1.113883.6.96": "UNII",
        "2.16.840.1.113883.6.43.1": "SNOMED CT",
        "2.16.840.1.113883.3.26.1.1": "FDA",
        "2.16.840.1.113883.3.26.1.5": "RxNorm",
        "2.16.840.1.113883.6.1": "LOINC",
        "2.16.840.1.113883.6.278": "RxCUI",
        "1.3.160": "GS1",
        "2.16.840.1.113883.6.40": "HIBCC",
        "2.16.840.1.113883.6.18": "ISBT 128",
        "2.16.840.1.113883.6.301.5": "UDI",
        "2.16.840.1.113883.3.9848": "CLN",
        "2.16.840.1.113883.6.3": "ICD-9-CM",
        "2.16.840.1.113883.6.4": "ICD-10",
        "2.16.840.1.113883.6.42": "UCUM",
        "2.16.840.1.113883.3.26.1.2": "FDA Substance",
        "2.16.840.1.113883.3.26.1.3": "FDA Route",
        "2.16.840.1.113883.3.26.1.4": "FDA Dose Form",
        "2.16.840.1.113883.3.26.1.6": "FDA Packaging",
        "2.16.840.1.113883.3.26.1.7": "FDA Pharmaceutical",
        "2.16.840.1.113883.3.26.1.8": "FDA Status",
    }


class ReturnedEventDatePolicy(str, Enum):
    """What to do with an effective date found on a returned product event."""

    DROP = "drop"
    REJECT = "reject"


class ParseSettings(BaseModel):
    """Runtime knobs for a single ingestion run."""

    model_config = ConfigDict(frozen=True)

    returned_event_dates: ReturnedEventDatePolicy = Field(
        default=ReturnedEventDatePolicy.DROP,
        description="Drop the date of a returned event, or keep it so validation rejects the event",
    )

    @classmethod
    def from_env(cls) -> "ParseSettings":
        """Build settings from SPL_* environment variables."""
        policy = os.getenv("SPL_RETURNED_EVENT_DATES", ReturnedEventDatePolicy.DROP.value)
        return cls(returned_event_dates=ReturnedEventDatePolicy(policy.strip().lower()))
