# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Shared fixtures: SPL XML fragments, stores and log capture."""

from collections.abc import Iterator
from typing import Optional
from xml.etree import ElementTree
from xml.etree.ElementTree import Element

import pytest
from loguru import logger

from coreason_etl_fda_spl.config import ParseSettings
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.orchestrator import SplGraphOrchestrator
from coreason_etl_fda_spl.store.repository import EntityStore

FDA = "2.16.840.1.113883.3.26.1.1"
NDC = "2.16.840.1.113883.6.69"
COSMETIC = "2.16.840.1.113883.6.303"


class SplXml:
    """Builders for SPL XML snippets in the HL7 v3 namespace."""

    NS = 'xmlns="urn:hl7-org:v3"'

    @staticmethod
    def parse(xml: str) -> Element:
        return ElementTree.fromstring(xml)

    @classmethod
    def element(cls, xml: str) -> Element:
        """Parse a fragment whose root tag lacks the namespace declaration."""
        tag_end = xml.index(">")
        head = xml[:tag_end]
        if head.endswith("/"):
            head = head[:-1]
            return cls.parse(f"{head} {cls.NS}/>{xml[tag_end + 1:]}")
        return cls.parse(f"{head} {cls.NS}{xml[tag_end:]}")

    @classmethod
    def document(
        cls, body: str, doc_id: str = "doc-1", type_code: str = "34391-3", set_id: Optional[str] = None
    ) -> str:
        set_id_el = f'<setId root="{set_id}"/>' if set_id is not None else ""
        return (
            f"<document {cls.NS}>"
            f'<id root="{doc_id}"/>'
            f"{set_id_el}"
            f'<code code="{type_code}" codeSystem="2.16.840.1.113883.6.1"/>'
            f"<component><structuredBody>{body}</structuredBody></component>"
            f"</document>"
        )

    @staticmethod
    def section(content: str, section_id: str = "sec-1") -> str:
        return f'<component><section><id root="{section_id}"/>{content}</section></component>'

    @staticmethod
    def product(entity: str = "", role: str = "", name: str = "Acme Tabs", code: str = "1234-5678") -> str:
        return (
            "<subject><manufacturedProduct>"
            "<manufacturedProduct>"
            f'<code code="{code}" codeSystem="{NDC}"/>'
            f"<name>{name}<suffix>XR</suffix></name>"
            f'<formCode code="C42998" codeSystem="{FDA}" displayName="TABLET"/>'
            f"{entity}"
            "</manufacturedProduct>"
            f"{role}"
            "</manufacturedProduct></subject>"
        )

    @staticmethod
    def marketing_act(status: str = "active", low: str = "20200101", system: str = FDA) -> str:
        return (
            "<subjectOf><marketingAct>"
            f'<code code="C53292" codeSystem="{system}"/>'
            f'<statusCode code="{status}"/>'
            f'<effectiveTime><low value="{low}"/></effectiveTime>'
            "</marketingAct></subjectOf>"
        )

    @staticmethod
    def package(code: str, nested: str = "", extra: str = "", numerator: str = "30") -> str:
        return (
            "<asContent>"
            f'<quantity><numerator value="{numerator}" unit="1"/><denominator value="1"/></quantity>'
            "<containerPackagedProduct>"
            f'<code code="{code}" codeSystem="{NDC}"/>'
            f'<formCode code="C43169" codeSystem="{FDA}" displayName="BOTTLE"/>'
            f"{nested}"
            "</containerPackagedProduct>"
            f"{extra}"
            "</asContent>"
        )

    @staticmethod
    def product_event(code: str = "C106325", quantity: str = "100", low: str | None = "20230101") -> str:
        effective = f'<effectiveTime><low value="{low}"/></effectiveTime>' if low else ""
        return (
            "<subjectOf>"
            f'<quantity value="{quantity}" unit="1"/>'
            f'<productEvent><code code="{code}" codeSystem="{FDA}"/>{effective}</productEvent>'
            "</subjectOf>"
        )

    @staticmethod
    def attachment(file_name: str = "letter.pdf", media_type: str = "application/pdf") -> str:
        return (
            "<subjectOf><document>"
            '<id root="att-1"/>'
            "<title>Supporting letter</title>"
            f'<text mediaType="{media_type}"><reference value="{file_name}"/></text>'
            "</document></subjectOf>"
        )

    @staticmethod
    def action(code: str = "C118406", text: str | None = None, effective: str = "20230115", display: str = "") -> str:
        text_el = f"<text>{text}</text>" if text is not None else ""
        display_attr = f' displayName="{display}"' if display else ""
        return (
            "<subjectOf><action>"
            f'<code code="{code}" codeSystem="{FDA}"{display_attr}/>'
            f'<effectiveTime value="{effective}"/>'
            f"{text_el}"
            "</action></subjectOf>"
        )

    @staticmethod
    def license_definition(actions: str = "", attachments: str = "", number: str = "LIC-001") -> str:
        return (
            "<performance><actDefinition>"
            "<subjectOf><approval>"
            f'<id extension="{number}" root="1.3.6.1.4.1.32366.4.840.1"/>'
            f'<code code="C118777" codeSystem="{FDA}" displayName="licensing"/>'
            '<statusCode code="active"/>'
            '<effectiveTime><high value="20251231"/></effectiveTime>'
            '<author><territorialAuthority><territory><code code="US-MD" codeSystem="1.0.3166.2"/></territory>'
            "</territorialAuthority></author>"
            f"{actions}{attachments}"
            "</approval></subjectOf>"
            "</actDefinition></performance>"
        )


@pytest.fixture(name="spl")
def spl() -> type[SplXml]:
    """SPL XML builders."""
    return SplXml


@pytest.fixture(name="store")
def store() -> EntityStore:
    """Fresh in-memory entity store."""
    return EntityStore()


@pytest.fixture(name="ctx")
def ctx(store: EntityStore) -> ParseContext:
    """Root context with a document and section."""
    return ParseContext(store=store, document_id="doc-1", document_type_code="34391-3", section_id="sec-1")


@pytest.fixture(name="orchestrator")
def orchestrator(store: EntityStore) -> SplGraphOrchestrator:
    """Orchestrator over the shared store with default settings."""
    return SplGraphOrchestrator(store=store, settings=ParseSettings())


@pytest.fixture(name="log_records")
def log_records() -> Iterator[list[tuple[str, str]]]:
    """Capture (level, message) pairs logged at WARNING or above."""
    records: list[tuple[str, str]] = []
    handler_id = logger.add(
        lambda message: records.append((message.record["level"].name, message.record["message"])),
        level="WARNING",
    )
    yield records
    logger.remove(handler_id)
