# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Persistence ports for graph entities and an indexed in-memory implementation."""

from collections import defaultdict
from collections.abc import Callable, Hashable
from typing import Any, Generic, Optional, Protocol, TypeVar

from loguru import logger

from coreason_etl_fda_spl.exceptions import PersistenceError
from coreason_etl_fda_spl.graph.models import (
    AttachedDocument,
    DisciplinaryAction,
    EntityKind,
    EquivalentEntity,
    GenericMedicine,
    GraphEntity,
    License,
    MarketingCategory,
    MarketingStatus,
    PackagingLevel,
    Policy,
    Product,
    ProductEvent,
    ProductIdentifier,
    SpecializedKind,
)

T = TypeVar("T", bound=GraphEntity)

NATURAL_KEY_INDEX = "natural_key"
BASE_KEY_INDEX = "base_key"

IndexFunction = Callable[[Any], Hashable]


class Repository(Protocol[T]):
    """Typed persistence port for one entity kind."""

    def create(self, record: T) -> T:
        """Persist a new record and return it with its surrogate id."""
        ...

    def update(self, record: T) -> T:
        """Replace a stored record (matched by id)."""
        ...

    def get(self, entity_id: int) -> Optional[T]:
        """Return the record with this id, if any."""
        ...

    def find(self, index: str, key: Hashable) -> list[T]:
        """Return records whose value for ``index`` equals ``key``, oldest first."""
        ...

    def query_all(self) -> list[T]:
        """Return every stored record, oldest first."""
        ...


class InMemoryRepository(Generic[T]):
    """
    Dict-backed repository with auto-increment ids and hash indexes.

    Every repository indexes records by their natural key; extra indexes can be
    registered by name. Indexes are maintained on create and update, so lookups
    never scan the table.
    """

    def __init__(self, model: type[T], indexes: Optional[dict[str, IndexFunction]] = None) -> None:
        self.model = model
        self._rows: dict[int, T] = {}
        self._next_id = 1
        self._index_functions: dict[str, IndexFunction] = {NATURAL_KEY_INDEX: lambda r: r.natural_key()}
        self._index_functions.update(indexes or {})
        self._indexes: dict[str, defaultdict[Hashable, list[int]]] = {
            name: defaultdict(list) for name in self._index_functions
        }

    def __len__(self) -> int:
        return len(self._rows)

    def _add_to_indexes(self, record: T) -> None:
        for name, function in self._index_functions.items():
            self._indexes[name][function(record)].append(record.id)  # type: ignore[arg-type]

    def _remove_from_indexes(self, record: T) -> None:
        for name, function in self._index_functions.items():
            bucket = self._indexes[name].get(function(record))
            if bucket and record.id in bucket:
                bucket.remove(record.id)  # type: ignore[arg-type]

    def create(self, record: T) -> T:
        if record.id is not None:
            raise PersistenceError(f"{self.model.__name__} already has id {record.id}")
        stored = record.model_copy(update={"id": self._next_id})
        self._next_id += 1
        self._rows[stored.id] = stored  # type: ignore[index]
        self._add_to_indexes(stored)
        return stored

    def update(self, record: T) -> T:
        if record.id is None or record.id not in self._rows:
            raise PersistenceError(f"Cannot update unknown {self.model.__name__} id={record.id}")
        self._remove_from_indexes(self._rows[record.id])
        self._rows[record.id] = record
        self._add_to_indexes(record)
        return record

    def get(self, entity_id: int) -> Optional[T]:
        return self._rows.get(entity_id)

    def find(self, index: str, key: Hashable) -> list[T]:
        if index not in self._indexes:
            raise PersistenceError(f"{self.model.__name__} has no index named {index!r}")
        return [self._rows[i] for i in self._indexes[index].get(key, ())]

    def query_all(self) -> list[T]:
        return list(self._rows.values())


def _or_in_memory(
    repository: Optional[Repository[T]], model: type[T], indexes: Optional[dict[str, IndexFunction]] = None
) -> Repository[T]:
    return repository if repository is not None else InMemoryRepository(model, indexes)


class EntityStore:
    """One typed repository per entity kind, handed to the orchestrator."""

    def __init__(
        self,
        products: Optional[Repository[Product]] = None,
        packaging_levels: Optional[Repository[PackagingLevel]] = None,
        product_identifiers: Optional[Repository[ProductIdentifier]] = None,
        specialized_kinds: Optional[Repository[SpecializedKind]] = None,
        equivalent_entities: Optional[Repository[EquivalentEntity]] = None,
        marketing_categories: Optional[Repository[MarketingCategory]] = None,
        marketing_statuses: Optional[Repository[MarketingStatus]] = None,
        policies: Optional[Repository[Policy]] = None,
        product_events: Optional[Repository[ProductEvent]] = None,
        licenses: Optional[Repository[License]] = None,
        disciplinary_actions: Optional[Repository[DisciplinaryAction]] = None,
        attached_documents: Optional[Repository[AttachedDocument]] = None,
        generic_medicines: Optional[Repository[GenericMedicine]] = None,
    ) -> None:
        self.products = _or_in_memory(products, Product)
        self.packaging_levels = _or_in_memory(packaging_levels, PackagingLevel)
        self.product_identifiers = _or_in_memory(product_identifiers, ProductIdentifier)
        self.specialized_kinds = _or_in_memory(specialized_kinds, SpecializedKind)
        self.equivalent_entities = _or_in_memory(equivalent_entities, EquivalentEntity)
        self.marketing_categories = _or_in_memory(marketing_categories, MarketingCategory)
        self.marketing_statuses = _or_in_memory(
            marketing_statuses, MarketingStatus, indexes={BASE_KEY_INDEX: lambda r: r.base_key()}
        )
        self.policies = _or_in_memory(policies, Policy)
        self.product_events = _or_in_memory(product_events, ProductEvent)
        self.licenses = _or_in_memory(licenses, License)
        self.disciplinary_actions = _or_in_memory(disciplinary_actions, DisciplinaryAction)
        self.attached_documents = _or_in_memory(attached_documents, AttachedDocument)
        self.generic_medicines = _or_in_memory(generic_medicines, GenericMedicine)
        logger.debug("Entity store initialized")

    def repositories(self) -> dict[EntityKind, Repository[Any]]:
        """Map every entity kind to its repository."""
        return {
            EntityKind.PRODUCT: self.products,
            EntityKind.PACKAGING_LEVEL: self.packaging_levels,
            EntityKind.PRODUCT_IDENTIFIER: self.product_identifiers,
            EntityKind.SPECIALIZED_KIND: self.specialized_kinds,
            EntityKind.EQUIVALENT_ENTITY: self.equivalent_entities,
            EntityKind.MARKETING_CATEGORY: self.marketing_categories,
            EntityKind.MARKETING_STATUS: self.marketing_statuses,
            EntityKind.POLICY: self.policies,
            EntityKind.PRODUCT_EVENT: self.product_events,
            EntityKind.LICENSE: self.licenses,
            EntityKind.DISCIPLINARY_ACTION: self.disciplinary_actions,
            EntityKind.ATTACHED_DOCUMENT: self.attached_documents,
            EntityKind.GENERIC_MEDICINE: self.generic_medicines,
        }

    def repository_for(self, kind: EntityKind) -> Repository[Any]:
        """Return the repository holding ``kind``."""
        return self.repositories()[kind]
