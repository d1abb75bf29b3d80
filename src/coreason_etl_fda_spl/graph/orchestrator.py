# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Routes SPL subtrees to their parsers and isolates failures between siblings."""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import all_children, attribute, descendants, first_child
from coreason_etl_fda_spl.config import ParseSettings
from coreason_etl_fda_spl.graph.builders.licensing import is_license_approval
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.parsers import PARSERS, SectionParser
from coreason_etl_fda_spl.graph.result import ParseResult
from coreason_etl_fda_spl.store.repository import EntityStore
from coreason_etl_fda_spl.utils.logger import logger


class SplGraphOrchestrator:
    """Builds the entity graph for SPL documents into an entity store."""

    def __init__(self, store: Optional[EntityStore] = None, settings: Optional[ParseSettings] = None) -> None:
        """
        Args:
            store: Persistence ports. Defaults to a fresh in-memory store.
            settings: Parse settings. Defaults to ParseSettings().
        """
        self.store = store if store is not None else EntityStore()
        self.settings = settings if settings is not None else ParseSettings()
        self.parsers: dict[str, SectionParser] = {parser.section_name: parser(self.dispatch) for parser in PARSERS}

    def new_context(
        self, document_id: Optional[str] = None, document_type_code: Optional[str] = None
    ) -> ParseContext:
        """A root context bound to this orchestrator's store and settings."""
        return ParseContext(
            store=self.store,
            settings=self.settings,
            document_id=document_id,
            document_type_code=document_type_code,
        )

    def dispatch(self, kind: str, element: Element, ctx: ParseContext) -> ParseResult:
        """
        Invoke the parser registered for ``kind``.

        Any exception raised while parsing the subtree is logged and turned
        into a single error entry; it never reaches the caller.

        Args:
            kind: Parser name, e.g. ``manufacturedProduct`` or ``packaging``.
            element: Root element of the subtree.
            ctx: Context for the subtree.

        Returns:
            The parser's result, or a failed result.
        """
        parser = self.parsers.get(kind)
        if parser is None:
            logger.error(f"No parser registered for '{kind}'")
            return ParseResult.failure(f"No parser registered for '{kind}'")

        try:
            return parser.parse(element, ctx)
        except Exception as e:
            logger.error(f"Error parsing {kind} in document {ctx.document_id}: {e}")
            return ParseResult.failure(f"Error parsing {kind}: {e}")

    def ingest_document(self, root: Element) -> ParseResult:
        """
        Build the entity graph for one SPL ``document`` element.

        The document is identified by its ``setId`` root, or by its ``id`` root
        when it has no setId. Products are taken from every section's
        ``subject/manufacturedProduct``, numbered by position within the
        section, and licenses from every ``actDefinition`` carrying a licensing approval,
        in document order. Re-ingesting the same document creates nothing new.

        Args:
            root: The document root.

        Returns:
            The merged result for the document.
        """
        # setId is stable across label versions; id changes with every version
        document_id = attribute(first_child(root, "setId"), "root") or attribute(first_child(root, "id"), "root")
        if document_id is None:
            logger.error("SPL document has neither a setId nor an id root; nothing ingested")
            return ParseResult.failure("Document has no setId or id root")

        document_type_code = attribute(first_child(root, "code"), "code")
        ctx = self.new_context(document_id, document_type_code)
        logger.info(f"Ingesting SPL document {document_id} (type {document_type_code})")

        result = ParseResult()
        for section in descendants(root, "section"):
            section_ctx = ctx.with_section(attribute(first_child(section, "id"), "root"))
            for index, role in enumerate(all_children(section, "subject", "manufacturedProduct"), start=1):
                result.merge(self.dispatch("manufacturedProduct", role, section_ctx.with_product_sequence(index)))

        for act_definition in descendants(root, "actDefinition"):
            if any(is_license_approval(a) for a in all_children(act_definition, "subjectOf", "approval")):
                result.merge(self.dispatch("license", act_definition, ctx))

        logger.info(
            f"Document {document_id}: created={result.total_created} "
            f"errors={len(result.errors)} rejected={len(result.warnings)}"
        )
        return result
