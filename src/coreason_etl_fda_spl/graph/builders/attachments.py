# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Builder for attached documents."""

from typing import Optional
from xml.etree.ElementTree import Element

from coreason_etl_fda_spl.accessor import attribute, first_child, text
from coreason_etl_fda_spl.graph.context import ParseContext
from coreason_etl_fda_spl.graph.models import AttachedDocument
from coreason_etl_fda_spl.utils.logger import logger


def build_attached_document(document: Element, ctx: ParseContext) -> Optional[AttachedDocument]:
    """
    Build an attached document from a ``subjectOf/document`` element.

    The file is described by ``text@mediaType`` and ``text/reference@value``;
    the owner comes from the context.

    Args:
        document: The document element.
        ctx: Context holding the attachment owner.

    Returns:
        The candidate, or None when media type or file name is missing.
    """
    text_el = first_child(document, "text")
    media_type = attribute(text_el, "mediaType")
    file_name = attribute(first_child(text_el, "reference"), "value")
    if media_type is None or file_name is None:
        logger.warning(
            f"Skipping attached document without media type or file name for "
            f"{ctx.attachment_owner.kind.value} {ctx.attachment_owner.entity_id}"
        )
        return None

    return AttachedDocument.model_construct(
        owner=ctx.attachment_owner,
        media_type=media_type,
        file_name=file_name,
        document_id_root=attribute(first_child(document, "id"), "root"),
        title=text(first_child(document, "title")),
    )
