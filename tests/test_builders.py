# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Tests for the entity builders that turn SPL elements into candidates."""

from datetime import date
from typing import Optional
from xml.etree.ElementTree import Element

import pytest

from coreason_etl_fda_spl.accessor import first_child
from coreason_etl_fda_spl.config import ParseSettings, ReturnedEventDatePolicy
from coreason_etl_fda_spl.graph.builders.attachments import build_attached_document
from coreason_etl_fda_spl.graph.builders.events import build_product_event
from coreason_etl_fda_spl.graph.builders.identity import (
    build_equivalent_entities,
    build_product_identifiers,
    build_specialized_kinds,
    infer_identifier_type,
)
from coreason_etl_fda_spl.graph.builders.licensing import build_disciplinary_action, build_license
from coreason_etl_fda_spl.graph.builders.marketing import (
    build_marketing_category,
    build_marketing_status,
    build_policy,
)
from coreason_etl_fda_spl.graph.builders.product import build_generic_medicines, build_product
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.models import (
    AttachmentOwner,
    AttachmentOwnerKind,
    License,
    PackagingLevel,
    Product,
)
from coreason_etl_fda_spl.graph.validation import check_record

from conftest import FDA, NDC, SplXml

PRODUCT = Product(id=1, document_id="doc-1", section_id="sec-1")
LEVEL = PackagingLevel(id=5, product_id=1)
LICENSE = License(id=2, license_number="LIC-001", license_root_oid="1.3.6.1.4.1.32366.4.840.1")


@pytest.fixture(name="product_ctx")
def product_ctx(ctx: ParseContext) -> ParseContext:
    return ctx.with_product(PRODUCT)


class TestProductBuilders:
    """Tests for product and generic medicine builders."""

    def test_build_product(self, ctx: ParseContext) -> None:
        """Test that the name excludes the suffix and form codes are read."""
        entity = SplXml.element(
            "<manufacturedProduct>"
            '<name>Acme  Tabs<suffix>XR</suffix></name>'
            f'<formCode code="C42998" codeSystem="{FDA}" displayName="TABLET"/>'
            "<desc>Film coated</desc>"
            "</manufacturedProduct>"
        )
        product = build_product(entity, ctx)
        assert product.product_name == "Acme Tabs"
        assert product.product_suffix == "XR"
        assert (product.form_code, product.form_code_system, product.form_display_name) == ("C42998", FDA, "TABLET")
        assert product.description_text == "Film coated"
        assert product.document_id == "doc-1"
        assert product.section_id == "sec-1"
        assert product.sequence_number is None
        assert check_record(product) == []

    def test_build_product_position(self, ctx: ParseContext) -> None:
        """Test that the position within the section is part of the product key."""
        entity = SplXml.element("<manufacturedProduct><name>Acme Tabs</name></manufacturedProduct>")
        first = build_product(entity, ctx.with_product_sequence(1))
        second = build_product(entity, ctx.with_product_sequence(2))
        assert (first.sequence_number, second.sequence_number) == (1, 2)
        assert first.natural_key() != second.natural_key()

    def test_build_generic_medicines(self, product_ctx: ParseContext, log_records: list[tuple[str, str]]) -> None:
        """Test generic and phonetic names, and skipping nameless entries."""
        entity = SplXml.element(
            "<manufacturedProduct>"
            "<asEntityWithGeneric><genericMedicine>"
            '<name>acetaminophen</name><name use="PHON">a-seet-a-MIN-oh-fen</name>'
            "</genericMedicine></asEntityWithGeneric>"
            "<asEntityWithGeneric><genericMedicine/></asEntityWithGeneric>"
            "</manufacturedProduct>"
        )
        medicines = build_generic_medicines(entity, product_ctx)
        assert len(medicines) == 1
        assert medicines[0].generic_name == "acetaminophen"
        assert medicines[0].phonetic_name == "a-seet-a-MIN-oh-fen"
        assert medicines[0].product_id == 1
        assert len(log_records) == 1


class TestIdentityBuilders:
    """Tests for identifiers, equivalences and specialized kinds."""

    def test_identifiers_keep_source_order(self, product_ctx: ParseContext) -> None:
        """Test that equal codes from distinct elements stay distinct."""
        entity = SplXml.element(
            "<manufacturedProduct>"
            f'<code code="1234-5678" codeSystem="{NDC}"/>'
            "<asContent><containerPackagedProduct>"
            f'<code code="1234-5678-01" codeSystem="{NDC}"/>'
            "<asContent><containerPackagedProduct>"
            f'<code code="1234-5678-01" codeSystem="{NDC}"/>'
            "</containerPackagedProduct></asContent>"
            "</containerPackagedProduct></asContent>"
            "</manufacturedProduct>"
        )
        identifiers = build_product_identifiers(entity, product_ctx)
        assert [(i.identifier_value, i.source_index) for i in identifiers] == [
            ("1234-5678", 0),
            ("1234-5678-01", 1),
            ("1234-5678-01", 2),
        ]
        assert {i.identifier_type for i in identifiers} == {"NDC"}
        assert len({i.natural_key() for i in identifiers}) == 3

    def test_identifier_without_system_skipped(self, product_ctx: ParseContext) -> None:
        """Test that incomplete code elements are skipped but still counted."""
        entity = SplXml.element(
            "<manufacturedProduct>"
            '<code code="1234-5678"/>'
            "<asContent><containerPackagedProduct>"
            f'<code code="1234-5678-01" codeSystem="{NDC}"/>'
            "</containerPackagedProduct></asContent>"
            "</manufacturedProduct>"
        )
        identifiers = build_product_identifiers(entity, product_ctx)
        assert [(i.identifier_value, i.source_index) for i in identifiers] == [("1234-5678-01", 1)]

    @pytest.mark.parametrize(
        "oid,expected",
        [
            ("2.16.840.1.113883.6.69", "NDC"),
            ("2.16.840.1.113883.6.96", "UNII"),
            ("1.3.160", "GS1"),
            ("9.9.9", None),
            (None, None),
        ],
    )
    def test_infer_identifier_type(self, oid: str, expected: str) -> None:
        """Test code system labels."""
        assert infer_identifier_type(oid) == expected

    def test_equivalent_entities(self, product_ctx: ParseContext, log_records: list[tuple[str, str]]) -> None:
        """Test class code filtering and skipping entries without codes."""
        entity = SplXml.element(
            "<manufacturedProduct>"
            '<asEquivalentEntity classCode="EQUIV">'
            f'<code code="C64637" codeSystem="{FDA}"/>'
            f'<definingMaterialKind><code code="0000-1111" codeSystem="{NDC}"/></definingMaterialKind>'
            "</asEquivalentEntity>"
            '<asEquivalentEntity classCode="OTHER"><code code="X"/></asEquivalentEntity>'
            "<asEquivalentEntity/>"
            "</manufacturedProduct>"
        )
        equivalents = build_equivalent_entities(entity, product_ctx)
        assert len(equivalents) == 1
        assert equivalents[0].equivalence_code == "C64637"
        assert equivalents[0].defining_material_kind_code == "0000-1111"
        assert len(log_records) == 1

    def test_specialized_kinds(self, product_ctx: ParseContext) -> None:
        """Test reading generalized material kind codes."""
        entity = SplXml.element(
            "<manufacturedProduct>"
            "<asSpecializedKind><generalizedMaterialKind>"
            '<code code="01D1" codeSystem="2.16.840.1.113883.6.303" displayName="Eye shadow"/>'
            "</generalizedMaterialKind></asSpecializedKind>"
            "</manufacturedProduct>"
        )
        [kind] = build_specialized_kinds(entity, product_ctx)
        assert (kind.kind_code, kind.kind_display_name) == ("01D1", "Eye shadow")


class TestMarketingBuilders:
    """Tests for marketing categories, statuses and policies."""

    def test_marketing_category(self, product_ctx: ParseContext) -> None:
        """Test reading an approval."""
        approval = SplXml.element(
            "<approval>"
            '<id extension="NDA012345" root="2.16.840.1.113883.3.150"/>'
            f'<code code="C73594" codeSystem="{FDA}" displayName="NDA"/>'
            '<effectiveTime><low value="19990115"/></effectiveTime>'
            '<author><territorialAuthority><territory><code code="USA"/></territory></territorialAuthority></author>'
            "</approval>"
        )
        category = build_marketing_category(approval, product_ctx)
        assert category is not None
        assert category.application_or_monograph_id_value == "NDA012345"
        assert category.approval_date == date(1999, 1, 15)
        assert category.territory_code == "USA"
        assert check_record(category) == []

    def test_marketing_category_without_code(self, product_ctx: ParseContext) -> None:
        """Test that an approval without a code is skipped."""
        assert build_marketing_category(SplXml.element("<approval/>"), product_ctx) is None

    def test_marketing_status_dual_linkage(self, product_ctx: ParseContext) -> None:
        """Test association with both product and packaging level."""
        act = first_child(SplXml.element(SplXml.marketing_act(status="ACTIVE")), "marketingAct")
        status = build_marketing_status(act, product_ctx.with_packaging_level(LEVEL))
        assert status is not None
        assert (status.product_id, status.packaging_level_id) == (1, 5)
        assert status.status_code == "active"
        assert status.effective_start_date == date(2020, 1, 1)

    def test_marketing_status_other_system(self, product_ctx: ParseContext) -> None:
        """Test that acts outside the FDA code system are ignored."""
        act = first_child(SplXml.element(SplXml.marketing_act(system="2.16.840.1.113883.6.1")), "marketingAct")
        assert build_marketing_status(act, product_ctx) is None

    def test_marketing_status_unknown_status(self, product_ctx: ParseContext) -> None:
        """Test that unknown statuses are ignored."""
        act = first_child(SplXml.element(SplXml.marketing_act(status="suspended")), "marketingAct")
        assert build_marketing_status(act, product_ctx) is None

    def test_policy(self, product_ctx: ParseContext) -> None:
        """Test reading a DEA schedule."""
        policy_el = SplXml.element(
            f'<policy classCode="DEADrugSchedule"><code code="C48675" codeSystem="{FDA}" displayName="CII"/></policy>'
        )
        policy = build_policy(policy_el, product_ctx)
        assert policy is not None
        assert check_record(policy) == []
        assert build_policy(SplXml.element('<policy classCode="DEADrugSchedule"/>'), product_ctx) is None


class TestProductEventBuilder:
    """Tests for lot distribution events."""

    def test_distributed_event(self, ctx: ParseContext) -> None:
        """Test a distributed event with its quantity and date."""
        event = build_product_event(SplXml.element(SplXml.product_event()), ctx.with_packaging_level(LEVEL))
        assert event is not None
        assert (event.packaging_level_id, event.quantity_value, event.quantity_unit) == (5, 100, "1")
        assert event.effective_time_low == date(2023, 1, 1)
        assert check_record(event) == []

    def test_returned_event_date_dropped(self, ctx: ParseContext, log_records: list[tuple[str, str]]) -> None:
        """Test that the drop policy removes the date with a warning."""
        subject_of = SplXml.element(SplXml.product_event(code="C106328"))
        event = build_product_event(subject_of, ctx.with_packaging_level(LEVEL))
        assert event is not None
        assert event.effective_time_low is None
        assert check_record(event) == []
        assert any("Dropping effective date" in msg for _, msg in log_records)

    def test_returned_event_date_kept_for_rejection(self, ctx: ParseContext) -> None:
        """Test that the reject policy lets the gate turn the event down."""
        reject = ParseSettings(returned_event_dates=ReturnedEventDatePolicy.REJECT)
        level_ctx = ctx.model_copy(update={"settings": reject}).with_packaging_level(LEVEL)
        event = build_product_event(SplXml.element(SplXml.product_event(code="C106328")), level_ctx)
        assert event is not None
        assert event.effective_time_low == date(2023, 1, 1)
        assert check_record(event) != []

    def test_empty_unit_kept(self, ctx: ParseContext) -> None:
        """Test that an empty quantity unit stays an empty string and passes the gate."""
        subject_of = SplXml.element(SplXml.product_event().replace('unit="1"', 'unit=""'))
        event = build_product_event(subject_of, ctx.with_packaging_level(LEVEL))
        assert event is not None
        assert event.quantity_unit == ""
        assert check_record(event) == []

    def test_non_integer_quantity(self, ctx: ParseContext, log_records: list[tuple[str, str]]) -> None:
        """Test that a malformed quantity is dropped."""
        event = build_product_event(SplXml.element(SplXml.product_event(quantity="1.5")), ctx.with_packaging_level(LEVEL))
        assert event is not None and event.quantity_value is None
        assert len(log_records) == 1

    def test_unknown_event_code(self, ctx: ParseContext) -> None:
        """Test that other event codes are ignored."""
        subject_of = SplXml.element(SplXml.product_event(code="C999999"))
        assert build_product_event(subject_of, ctx.with_packaging_level(LEVEL)) is None


class TestLicensingBuilders:
    """Tests for licenses and disciplinary actions."""

    def _approval(self, **kwargs: str) -> Optional[Element]:
        definition = SplXml.element(SplXml.license_definition(**kwargs))
        return first_child(definition, "actDefinition", "subjectOf", "approval")

    def test_build_license(self, ctx: ParseContext) -> None:
        """Test reading a licensing approval."""
        license_ = build_license(self._approval(), ctx)
        assert license_ is not None
        assert license_.license_number == "LIC-001"
        assert license_.expiration_date == date(2025, 12, 31)
        assert (license_.territory_code, license_.status_code) == ("US-MD", "active")
        assert check_record(license_) == []

    def test_license_without_number(self, ctx: ParseContext, log_records: list[tuple[str, str]]) -> None:
        """Test that an approval without an id extension is skipped."""
        approval = SplXml.element(f'<approval><id root="1.2"/><code code="C118777" codeSystem="{FDA}"/></approval>')
        assert build_license(approval, ctx) is None
        assert len(log_records) == 1

    def test_action(self, ctx: ParseContext) -> None:
        """Test a suspension with its date."""
        action_el = first_child(SplXml.element(SplXml.action(display="Suspension")), "action")
        action = build_disciplinary_action(action_el, ctx.with_license(LICENSE))
        assert action is not None
        assert (action.license_id, action.action_code, action.effective_time) == (2, "C118406", date(2023, 1, 15))
        assert check_record(action) == []

    @pytest.mark.parametrize("text", [None, "", "<b>fined</b>"])
    def test_other_without_plain_text(
        self, ctx: ParseContext, log_records: list[tuple[str, str]], text: str | None
    ) -> None:
        """Test that an 'other' action without plain text is skipped with one warning."""
        action_el = first_child(SplXml.element(SplXml.action(code="C118472", text=text)), "action")
        assert build_disciplinary_action(action_el, ctx.with_license(LICENSE)) is None
        assert log_records == [
            ("WARNING", "Skipping 'other' disciplinary action without plain text for license 2")
        ]

    def test_other_with_text(self, ctx: ParseContext) -> None:
        """Test an 'other' action with descriptive text."""
        action_el = first_child(SplXml.element(SplXml.action(code="C118472", text="Civil penalty")), "action")
        action = build_disciplinary_action(action_el, ctx.with_license(LICENSE))
        assert action is not None and action.action_text == "Civil penalty"
        assert check_record(action) == []


class TestAttachmentBuilder:
    """Tests for attached documents."""

    def test_build_attached_document(self, ctx: ParseContext) -> None:
        """Test reading the file reference and owner."""
        owner = AttachmentOwner(kind=AttachmentOwnerKind.LICENSE, entity_id=2)
        document = first_child(SplXml.element(SplXml.attachment()), "document")
        attachment = build_attached_document(document, ctx.with_attachment_owner(owner))
        assert attachment is not None
        assert (attachment.owner, attachment.file_name, attachment.media_type) == (owner, "letter.pdf", "application/pdf")
        assert attachment.title == "Supporting letter"
        assert check_record(attachment) == []

    def test_missing_reference(self, ctx: ParseContext, log_records: list[tuple[str, str]]) -> None:
        """Test that a document without a file name is skipped."""
        owner = AttachmentOwner(kind=AttachmentOwnerKind.PRODUCT, entity_id=1)
        document = SplXml.element('<document><text mediaType="application/pdf"/></document>')
        assert build_attached_document(document, ctx.with_attachment_owner(owner)) is None
        assert len(log_records) == 1
