# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Aggregated outcome of parsing a subtree."""

from pydantic import BaseModel, Field

from coreason_etl_fda_spl.graph.models import EntityKind


class ParseResult(BaseModel):
    """Counters and diagnostics accumulated while building the graph."""

    success: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list, description="Rejected candidates with their reasons")
    created: dict[EntityKind, int] = Field(default_factory=dict)
    updated: dict[EntityKind, int] = Field(default_factory=dict)

    @classmethod
    def failure(cls, message: str) -> "ParseResult":
        """A result holding a single hard error."""
        return cls(success=False, errors=[message])

    def add_error(self, message: str) -> None:
        self.success = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def record_created(self, kind: EntityKind, count: int = 1) -> None:
        self.created[kind] = self.created.get(kind, 0) + count

    def record_updated(self, kind: EntityKind, count: int = 1) -> None:
        self.updated[kind] = self.updated.get(kind, 0) + count

    def created_count(self, kind: EntityKind) -> int:
        return self.created.get(kind, 0)

    def updated_count(self, kind: EntityKind) -> int:
        return self.updated.get(kind, 0)

    @property
    def total_created(self) -> int:
        return sum(self.created.values())

    def merge(self, other: "ParseResult") -> "ParseResult":
        """
        Fold a child result into this one.

        Args:
            other: Result of a nested parse.

        Returns:
            This result, for chaining.
        """
        self.success = self.success and other.success
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        for kind, count in other.created.items():
            self.record_created(kind, count)
        for kind, count in other.updated.items():
            self.record_updated(kind, count)
        return self
