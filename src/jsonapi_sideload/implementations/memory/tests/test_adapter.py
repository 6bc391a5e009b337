import pytest

from ....exceptions import ExecutionError
from ....models import Direction, ResourceDefinition
from ..adapter import MemoryStorageAdapter


class TestMemoryStorageAdapter:
    @pytest.fixture
    def target(self):
        return MemoryStorageAdapter(
            {
                "books": [
                    {"id": 1, "title": "The Shining", "pages": 447},
                    {"id": 2, "title": "The Stand", "pages": 1153},
                    {"id": 3, "title": "Carrie", "pages": 199},
                    {"id": 4, "title": "It", "pages": None},
                ],
            }
        )

    @pytest.fixture
    def books(self):
        return ResourceDefinition("books", attributes=["title", "pages"])

    def test_scopes_are_immutable(self, target, books):
        base = target.base_scope(books)
        filtered = target.filter(base, "id", {1})
        assert base.filters == ()
        assert target.resolve(base) != target.resolve(filtered)

    def test_filter(self, target, books):
        scope = target.filter(target.base_scope(books), "id", {1, 3})
        scope = target.filter(scope, "title", {"Carrie", "The Stand"})
        assert [r["id"] for r in target.resolve(scope)] == [3]

    def test_filter_by_string_values(self, target, books):
        scope = target.filter(target.base_scope(books), "id", {"2"})
        assert [r["id"] for r in target.resolve(scope)] == [2]

    def test_order(self, target, books):
        # nulls come last in either direction
        scope = target.order(target.base_scope(books), "pages", Direction.DESC)
        assert [r["id"] for r in target.resolve(scope)] == [2, 1, 3, 4]
        scope = target.order(target.base_scope(books), "pages", Direction.ASC)
        assert [r["id"] for r in target.resolve(scope)] == [3, 1, 2, 4]

    def test_order_by_multiple_keys(self, target, books):
        target.collections["books"].append({"id": 5, "title": "Carrie", "pages": 100})
        scope = target.order(target.base_scope(books), "title", Direction.ASC)
        scope = target.order(scope, "id", Direction.DESC)
        assert [r["id"] for r in target.resolve(scope)] == [5, 3, 4, 1, 2]

    def test_nulls_keep_the_order_of_the_next_key(self, target, books):
        target.collections["books"].append({"id": 5, "title": "Cujo", "pages": None})
        scope = target.order(target.base_scope(books), "pages", Direction.DESC)
        scope = target.order(scope, "id", Direction.DESC)
        assert [r["id"] for r in target.resolve(scope)] == [2, 1, 3, 5, 4]

    def test_paginate(self, target, books):
        scope = target.order(target.base_scope(books), "id", Direction.ASC)
        assert [r["id"] for r in target.resolve(target.paginate(scope, 2, 3))] == [4]
        assert target.resolve(target.paginate(scope, 3, 3)) == []

    def test_unknown_collection(self, target):
        with pytest.raises(ExecutionError):
            target.join_scope("author_books")

    def test_attribute(self, target):
        class Record:
            title = "Misery"

        assert target.attribute({"title": "It"}, "title") == "It"
        assert target.attribute(Record(), "title") == "Misery"
