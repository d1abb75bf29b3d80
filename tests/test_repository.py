# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_etl_fda_spl

"""Tests for the in-memory repository and entity store."""

import pytest

from coreason_etl_fda_spl.exceptions import PersistenceError
from coreason_etl_fda_spl.graph.models import EntityKind, MarketingStatus, Product
from coreason_etl_fda_spl.store.repository import (
    BASE_KEY_INDEX,
    NATURAL_KEY_INDEX,
    EntityStore,
    InMemoryRepository,
)

FDA = "2.16.840.1.113883.3.26.1.1"


def _product(name: str) -> Product:
    return Product(document_id="doc", section_id="sec", product_name=name)


class TestInMemoryRepository:
    """Tests for InMemoryRepository."""

    def test_create_assigns_incrementing_ids(self) -> None:
        """Test surrogate id assignment."""
        repo = InMemoryRepository(Product)
        first = repo.create(_product("A"))
        second = repo.create(_product("B"))
        assert (first.id, second.id) == (1, 2)
        assert len(repo) == 2
        assert repo.get(2) == second

    def test_create_rejects_existing_id(self) -> None:
        """Test that a record with an id cannot be created again."""
        repo = InMemoryRepository(Product)
        stored = repo.create(_product("A"))
        with pytest.raises(PersistenceError, match="already has id"):
            repo.create(stored)

    def test_find_by_natural_key(self) -> None:
        """Test the natural key index."""
        repo = InMemoryRepository(Product)
        stored = repo.create(_product("A"))
        assert repo.find(NATURAL_KEY_INDEX, _product("A").natural_key()) == [stored]
        assert repo.find(NATURAL_KEY_INDEX, _product("Z").natural_key()) == []

    def test_update_reindexes(self) -> None:
        """Test that updates move a record between index buckets."""
        repo = InMemoryRepository(Product)
        stored = repo.create(_product("A"))
        renamed = repo.update(stored.model_copy(update={"product_name": "B"}))
        assert repo.find(NATURAL_KEY_INDEX, _product("A").natural_key()) == []
        assert repo.find(NATURAL_KEY_INDEX, _product("B").natural_key()) == [renamed]
        assert repo.query_all() == [renamed]

    def test_update_unknown(self) -> None:
        """Test that updating an unknown id fails."""
        repo = InMemoryRepository(Product)
        with pytest.raises(PersistenceError, match="Cannot update unknown"):
            repo.update(_product("A").model_copy(update={"id": 42}))

    def test_unknown_index(self) -> None:
        """Test lookups on an unregistered index."""
        with pytest.raises(PersistenceError, match="no index named"):
            InMemoryRepository(Product).find("by_name", ("A",))


class TestEntityStore:
    """Tests for EntityStore."""

    def test_every_kind_has_a_repository(self) -> None:
        """Test the kind to repository mapping."""
        store = EntityStore()
        assert set(store.repositories()) == set(EntityKind)
        assert store.repository_for(EntityKind.PRODUCT) is store.products

    def test_marketing_status_base_key_index(self) -> None:
        """Test that statuses are indexed regardless of packaging level."""
        store = EntityStore()
        status = MarketingStatus(
            product_id=1,
            packaging_level_id=3,
            marketing_act_code="C53292",
            marketing_act_code_system=FDA,
            status_code="active",
        )
        stored = store.marketing_statuses.create(status)
        assert store.marketing_statuses.find(BASE_KEY_INDEX, status.base_key()) == [stored]

    def test_injected_repository_is_used(self) -> None:
        """Test that an empty injected repository is kept."""
        products = InMemoryRepository(Product)
        assert EntityStore(products=products).products is products
