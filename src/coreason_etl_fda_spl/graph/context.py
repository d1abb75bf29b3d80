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
Immutable parse context.

A context carries the parent entities a subtree needs (document, section,
product, packaging level, license, attachment owner) plus the persistence
ports. Parsers never modify the context they receive: they derive a new
value with one field overridden and pass that to their children, so a
sibling subtree always starts from the same context as its predecessor.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from coreason_etl_fda_spl.config import ParseSettings
from coreason_etl_fda_spl.graph.models import AttachmentOwner, License, PackagingLevel, Product
from coreason_etl_fda_spl.store.repository import EntityStore


class ParseContext(BaseModel):
    """Parent entities and ports visible to a subtree."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    store: EntityStore
    settings: ParseSettings = ParseSettings()
    document_id: Optional[str] = None
    document_type_code: Optional[str] = None
    section_id: Optional[str] = None
    product_sequence_number: Optional[int] = None
    product: Optional[Product] = None
    packaging_level: Optional[PackagingLevel] = None
    license: Optional[License] = None
    attachment_owner: Optional[AttachmentOwner] = None

    def with_section(self, section_id: Optional[str]) -> "ParseContext":
        return self.model_copy(update={"section_id": section_id})

    def with_product_sequence(self, sequence_number: int) -> "ParseContext":
        return self.model_copy(update={"product_sequence_number": sequence_number})

    def with_product(self, product: Product) -> "ParseContext":
        """Context for a product subtree; any packaging level of an outer product is cleared."""
        return self.model_copy(update={"product": product, "packaging_level": None})

    def with_packaging_level(self, packaging_level: PackagingLevel) -> "ParseContext":
        return self.model_copy(update={"packaging_level": packaging_level})

    def with_license(self, license_: License) -> "ParseContext":
        return self.model_copy(update={"license": license_})

    def with_attachment_owner(self, owner: AttachmentOwner) -> "ParseContext":
        return self.model_copy(update={"attachment_owner": owner})


def resolve_association(ctx: ParseContext) -> tuple[Optional[int], Optional[int]]:
    """
    Decide which owners a marketing status links to.

    Args:
        ctx: The current context.

    Returns:
        ``(product_id, packaging_level_id)``: packaging only gives ``(None, pl)``,
        product and packaging give ``(p, pl)``, product only gives ``(p, None)``.
    """
    product_id = ctx.product.id if ctx.product is not None else None
    packaging_level_id = ctx.packaging_level.id if ctx.packaging_level is not None else None
    return product_id, packaging_level_id
