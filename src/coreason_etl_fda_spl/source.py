# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Source module for locating and loading SPL XML documents."""

import hashlib
from pathlib import Path
from xml.etree import ElementTree
from xml.etree.ElementTree import Element

from loguru import logger
from pydantic import BaseModel, ConfigDict

from coreason_etl_fda_spl.accessor import local_name
from coreason_etl_fda_spl.config import SplConfig
from coreason_etl_fda_spl.exceptions import SourceConnectionError, SourceSchemaError


class SplDocument(BaseModel):
    """A loaded SPL file: its root element and the MD5 digest of its bytes."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: Path
    root: Element
    content_hash: str


class SplDocumentSource:
    """Finds SPL documents on disk and loads them as element trees."""

    def __init__(self, input_dir: Path = SplConfig.DEFAULT_INPUT_DIR) -> None:
        """
        Initialize the source with the directory holding SPL XML files.

        Args:
            input_dir: Directory scanned for ``*.xml`` files. Defaults to SplConfig.DEFAULT_INPUT_DIR.
        """
        self.input_dir = input_dir

    def resolve_documents(self) -> list[Path]:
        """
        List the SPL XML files under the input directory.

        Returns:
            Sorted list of document paths.

        Raises:
            SourceConnectionError: If the input directory does not exist.
        """
        if not self.input_dir.is_dir():
            logger.error(f"Input directory not found: {self.input_dir}")
            raise SourceConnectionError(f"Input directory not found: {self.input_dir}")

        documents = sorted(p for p in self.input_dir.rglob(SplConfig.FILE_GLOB) if p.is_file())
        if not documents:
            logger.warning(f"No SPL documents found in {self.input_dir}")
        else:
            logger.info(f"Found {len(documents)} SPL documents in {self.input_dir}")
        return documents

    def load_document(self, file_path: Path) -> SplDocument:
        """
        Read an SPL file once, fingerprint its bytes and parse its root ``document`` element.

        Args:
            file_path: Path to the XML file.

        Returns:
            The parsed document with the MD5 digest of its content.

        Raises:
            SourceConnectionError: If the file does not exist or cannot be read.
            SourceSchemaError: If the file is not well-formed XML or is not an HL7 SPL document.
        """
        if not file_path.exists():
            raise SourceConnectionError(f"SPL file not found: {file_path}")

        try:
            content = file_path.read_bytes()
        except OSError as e:
            logger.error(f"Failed to read {file_path}: {e}")
            raise SourceConnectionError(f"Failed to read {file_path}: {e}") from e

        try:
            root = ElementTree.fromstring(content)
        except ElementTree.ParseError as e:
            logger.error(f"Malformed XML in {file_path}: {e}")
            raise SourceSchemaError(f"File at {file_path} is not well-formed XML: {e}") from e

        expected = f"{{{SplConfig.HL7_NAMESPACE}}}document"
        if root.tag != expected:
            logger.error(f"Unexpected root element <{local_name(root)}> in {file_path}")
            raise SourceSchemaError(f"File at {file_path} is not an HL7 SPL document (root: {root.tag})")

        content_hash = hashlib.md5(content).hexdigest()
        logger.debug(f"Loaded {file_path} (md5 {content_hash})")
        return SplDocument(path=file_path, root=root, content_hash=content_hash)
