# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Exception hierarchy for the FDA SPL ETL."""


class SplEtlError(Exception):
    """Base class for all errors raised by the SPL ETL."""


class SourceConnectionError(SplEtlError):
    """Raised when a source document cannot be located or read."""


class SourceSchemaError(SplEtlError):
    """Raised when a source document is not well-formed SPL XML."""


class MissingContextError(SplEtlError):
    """Raised when a parser is invoked without the parent entity it requires."""

    def __init__(self, parser: str, missing: str) -> None:
        self.parser = parser
        self.missing = missing
        super().__init__(f"{parser} requires {missing} in the parse context")


class PersistenceError(SplEtlError):
    """Raised by a repository when a write cannot be applied."""
