# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""
Section parsers.

Each parser handles one kind of subtree, checks that the context holds the
parent entity it needs (a hard failure otherwise, before any child is
touched), saves its own entities through the gate and resolver, and hands
child subtrees back to the dispatcher with a derived context.
"""

from typing import ClassVar
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import all_children, first_child
from coreason_etl_fda_spl.exceptions import MissingContextError
from coreason_etl_fda_spl.graph.builders.attachments import build_attached_document
from coreason_etl_fda_spl.graph.builders.events import build_product_event
from coreason_etl_fda_spl.graph.builders.identity import (
    build_equivalent_entities,
    build_product_identifiers,
    build_specialized_kinds,
)
from coreason_etl_fda_spl.graph.builders.licensing import build_disciplinary_action, build_license
from coreason_etl_fda_spl.graph.builders.marketing import build_marketing_category, build_marketing_status, build_policy
from coreason_etl_fda_spl.graph.builders.product import build_generic_medicines, build_product
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.dedup import save_entity
from coreason_etl_fda_spl.graph.models import AttachmentOwner, AttachmentOwnerKind
from coreason_etl_fda_spl.graph.packaging import Dispatch, PackagingWalker
from coreason_etl_fda_spl.graph.result import ParseResult
from coreason_etl_fda_spl.graph.validation import check_record, validate_cosmetic_categories
from coreason_etl_fda_spl.utils.logger import logger


def _missing(parser: str, what: str) -> ParseResult:
    error = MissingContextError(parser, what)
    logger.error(str(error))
    return ParseResult.failure(str(error))


class SectionParser:
    """Base class: a named handler for one kind of subtree."""

    section_name: ClassVar[str]

    def __init__(self, dispatch: Dispatch) -> None:
        self.dispatch = dispatch

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        raise NotImplementedError


class ProductParser(SectionParser):
    """
    Handles a ``subject/manufacturedProduct`` role element.

    Order matters: the product is saved first, then identity, generic names,
    marketing and product attachments, and packaging last, so product-level
    marketing statuses exist before packaging-level ones can upgrade them.
    """

    section_name = "manufacturedProduct"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.document_id is None:
            return _missing(type(self).__name__, "a document")
        if ctx.section_id is None:
            return _missing(type(self).__name__, "a section")

        entity = first_child(element, "manufacturedProduct")
        if entity is None:
            entity = first_child(element, "manufacturedMedicine")
        if entity is None:
            logger.warning(f"Skipping manufacturedProduct role without an entity in section {ctx.section_id}")
            return ParseResult()

        result = ParseResult()
        product = save_entity(build_product(entity, ctx), ctx.store.products, result)
        if product is None:
            result.add_error(f"Product in section {ctx.section_id} could not be saved; its subtree was skipped")
            return result

        product_ctx = ctx.with_product(product)
        result.merge(self.dispatch("identity", entity, product_ctx))
        result.merge(self.dispatch("marketing", element, product_ctx))

        owner_ctx = product_ctx.with_attachment_owner(
            AttachmentOwner(kind=AttachmentOwnerKind.PRODUCT, entity_id=product.id)
        )
        for document in all_children(element, "subjectOf", "document"):
            result.merge(self.dispatch("attachedDocument", document, owner_ctx))

        result.merge(self.dispatch("packaging", entity, product_ctx))
        return result


class IdentityParser(SectionParser):
    """Identifiers, equivalences, specialized kinds and generic names of a product entity."""

    section_name = "identity"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.product is None:
            return _missing(type(self).__name__, "a product")

        result = ParseResult()
        for identifier in build_product_identifiers(element, ctx):
            save_entity(identifier, ctx.store.product_identifiers, result)
        for equivalent in build_equivalent_entities(element, ctx):
            save_entity(equivalent, ctx.store.equivalent_entities, result)

        # Set-level rule runs on the whole collection, after per-record checks
        valid_kinds = []
        for kind in build_specialized_kinds(element, ctx):
            violations = check_record(kind)
            if violations:
                message = f"Rejected specialized_kind ({kind.key_summary()}): {'; '.join(violations)}"
                logger.warning(message)
                result.add_warning(message)
            else:
                valid_kinds.append(kind)
        outcome = validate_cosmetic_categories(valid_kinds, ctx.document_type_code)
        for kind, reason in outcome.rejected:
            message = f"Rejected specialized_kind ({kind.key_summary()}): {reason}"
            logger.warning(message)
            result.add_warning(message)
        for kind in outcome.accepted:
            save_entity(kind, ctx.store.specialized_kinds, result)

        for generic in build_generic_medicines(element, ctx):
            save_entity(generic, ctx.store.generic_medicines, result)
        return result


class MarketingParser(SectionParser):
    """Marketing categories, product-level marketing statuses and policies from the role's ``subjectOf``."""

    section_name = "marketing"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.product is None:
            return _missing(type(self).__name__, "a product")

        result = ParseResult()
        for approval in all_children(element, "subjectOf", "approval"):
            category = build_marketing_category(approval, ctx)
            if category is not None:
                save_entity(category, ctx.store.marketing_categories, result)
        for marketing_act in all_children(element, "subjectOf", "marketingAct"):
            result.merge(self.dispatch("marketingStatus", marketing_act, ctx))
        for policy_el in all_children(element, "subjectOf", "policy"):
            policy = build_policy(policy_el, ctx)
            if policy is not None:
                save_entity(policy, ctx.store.policies, result)
        return result


class MarketingStatusParser(SectionParser):
    """A single ``marketingAct``, owned by whatever product and packaging level the context holds."""

    section_name = "marketingStatus"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.product is None and ctx.packaging_level is None:
            return _missing(type(self).__name__, "a product or packaging level")

        result = ParseResult()
        status = build_marketing_status(element, ctx)
        if status is not None:
            save_entity(status, ctx.store.marketing_statuses, result)
        return result


class PackagingParser(SectionParser):
    """Walks every top-level ``asContent`` of a product entity."""

    section_name = "packaging"

    def __init__(self, dispatch: Dispatch) -> None:
        super().__init__(dispatch)
        self.walker = PackagingWalker(dispatch)

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.product is None:
            return _missing(type(self).__name__, "a product")

        result = ParseResult()
        created = 0
        for index, as_content in enumerate(all_children(element, "asContent"), start=1):
            created += self.walker.walk(as_content, ctx.product, ctx, result, sequence_number=index)
        logger.debug(f"Created {created} packaging levels for product {ctx.product.id}")
        return result


class ProductEventParser(SectionParser):
    """A ``subjectOf`` element carrying a lot distribution event for a packaging level."""

    section_name = "productEvent"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.packaging_level is None:
            return _missing(type(self).__name__, "a packaging level")

        result = ParseResult()
        event = build_product_event(element, ctx)
        if event is not None:
            save_entity(event, ctx.store.product_events, result)
        return result


class LicenseParser(SectionParser):
    """Licensing approvals under an element's ``subjectOf/approval``, with their actions and attachments."""

    section_name = "license"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        result = ParseResult()
        for approval in all_children(element, "subjectOf", "approval"):
            candidate = build_license(approval, ctx)
            if candidate is None:
                continue
            license_ = save_entity(candidate, ctx.store.licenses, result)
            if license_ is None:
                continue

            license_ctx = ctx.with_license(license_)
            result.merge(self.dispatch("disciplinaryAction", approval, license_ctx))

            owner_ctx = license_ctx.with_attachment_owner(
                AttachmentOwner(kind=AttachmentOwnerKind.LICENSE, entity_id=license_.id)
            )
            for document in all_children(approval, "subjectOf", "document"):
                result.merge(self.dispatch("attachedDocument", document, owner_ctx))
        return result


class DisciplinaryActionParser(SectionParser):
    """Actions under a license approval's ``subjectOf/action``."""

    section_name = "disciplinaryAction"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.license is None:
            return _missing(type(self).__name__, "a license")

        result = ParseResult()
        for action_el in all_children(element, "subjectOf", "action"):
            candidate = build_disciplinary_action(action_el, ctx)
            if candidate is None:
                continue
            action = save_entity(candidate, ctx.store.disciplinary_actions, result)
            if action is None:
                continue

            owner_ctx = ctx.with_attachment_owner(
                AttachmentOwner(kind=AttachmentOwnerKind.DISCIPLINARY_ACTION, entity_id=action.id)
            )
            for document in all_children(action_el, "subjectOf", "document"):
                result.merge(self.dispatch("attachedDocument", document, owner_ctx))
        return result


class AttachedDocumentParser(SectionParser):
    """A single ``document`` element attached to the context's attachment owner."""

    section_name = "attachedDocument"

    def parse(self, element: Element, ctx: ParseContext) -> ParseResult:
        if ctx.attachment_owner is None:
            return _missing(type(self).__name__, "an attachment owner")

        result = ParseResult()
        document = build_attached_document(element, ctx)
        if document is not None:
            save_entity(document, ctx.store.attached_documents, result)
        return result


PARSERS: tuple[type[SectionParser], ...] = (
    ProductParser,
    IdentityParser,
    MarketingParser,
    MarketingStatusParser,
    PackagingParser,
    ProductEventParser,
    LicenseParser,
    DisciplinaryActionParser,
    AttachedDocumentParser,
)
