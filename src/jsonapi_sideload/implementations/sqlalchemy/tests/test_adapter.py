import datetime
import typing

import pytest
import sqlalchemy as sa  # type: ignore
from sqlalchemy import orm  # type: ignore

from ....exceptions import ExecutionError
from ....executor import QueryOverrides
from ....models import Direction
from ....sideloader import Sideloader
from ....tests.testing import build_registry, ids_of, included_of
from ..adapter import SQLAStorageAdapter


class Record:
    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)


class TestSQLAStorageAdapter:
    @pytest.fixture
    def metadata(self):
        yield sa.MetaData()

    @pytest.fixture
    def engine(self):
        yield sa.create_engine("sqlite:///")

    @pytest.fixture
    def tables(self, metadata) -> typing.Dict[str, sa.Table]:
        return {
            "states": sa.Table(
                "states",
                metadata,
                sa.Column("id", sa.Integer(), primary_key=True),
                sa.Column("name", sa.String(255), nullable=False),
                sa.Column("abbreviation", sa.String(2), nullable=False),
            ),
            "authors": sa.Table(
                "authors",
                metadata,
                sa.Column("id", sa.Integer(), primary_key=True),
                sa.Column("first_name", sa.String(255), nullable=False),
                sa.Column("state_id", sa.Integer(), sa.ForeignKey("states.id"), nullable=True),
                sa.Column("dwelling_type", sa.String(32), nullable=True),
                sa.Column("dwelling_id", sa.Integer(), nullable=True),
            ),
            "books": sa.Table(
                "books",
                metadata,
                sa.Column("id", sa.Integer(), primary_key=True),
                sa.Column("title", sa.String(255), nullable=False),
                sa.Column("pages", sa.Integer(), nullable=False),
                sa.Column("author_id", sa.Integer(), sa.ForeignKey("authors.id")),
            ),
            "bios": sa.Table(
                "bios",
                metadata,
                sa.Column("id", sa.Integer(), primary_key=True),
                sa.Column("description", sa.String(255), nullable=False),
                sa.Column("picture", sa.String(255), nullable=False),
                sa.Column("created_at", sa.Date(), nullable=False),
                sa.Column("author_id", sa.Integer(), sa.ForeignKey("authors.id")),
            ),
            "hobbies": sa.Table(
                "hobbies",
                metadata,
                sa.Column("id", sa.Integer(), primary_key=True),
                sa.Column("name", sa.String(255), nullable=False),
                sa.Column("description", sa.String(255), nullable=False),
            ),
            "author_hobbies": sa.Table(
                "author_hobbies",
                metadata,
                sa.Column("author_id", sa.Integer(), sa.ForeignKey("authors.id"), primary_key=True),
                sa.Column("hobby_id", sa.Integer(), sa.ForeignKey("hobbies.id"), primary_key=True),
            ),
            "houses": sa.Table(
                "houses",
                metadata,
                sa.Column("id", sa.Integer(), primary_key=True),
                sa.Column("name", sa.String(255), nullable=False),
                sa.Column("house_description", sa.String(255), nullable=False),
                sa.Column("state_id", sa.Integer(), sa.ForeignKey("states.id"), nullable=True),
            ),
            "condos": sa.Table(
                "condos",
                metadata,
                sa.Column("id", sa.Integer(), primary_key=True),
                sa.Column("name", sa.String(255), nullable=False),
                sa.Column("condo_description", sa.String(255), nullable=False),
            ),
        }

    @pytest.fixture
    def models(self, tables):
        class State(Record):
            @property
            def population(self):
                return 1_300_000

        class Author(Record):
            pass

        class Book(Record):
            @property
            def alternate_title(self):
                return "alt title"

        class Bio(Record):
            pass

        class Hobby(Record):
            @property
            def reason(self):
                return "hobby reason"

        class AuthorHobby(Record):
            pass

        class House(Record):
            @property
            def house_price(self):
                return 1_000_000

        class Condo(Record):
            @property
            def condo_price(self):
                return 500_000

        models = {
            "states": State,
            "authors": Author,
            "books": Book,
            "bios": Bio,
            "hobbies": Hobby,
            "author_hobbies": AuthorHobby,
            "houses": House,
            "condos": Condo,
        }
        mapper_registry = orm.registry()
        for name, class_ in models.items():
            mapper_registry.map_imperatively(class_, tables[name])
        yield models
        mapper_registry.dispose()

    @pytest.fixture
    def session(self, engine, metadata, models):
        metadata.create_all(bind=engine)
        session = orm.Session(bind=engine)
        session.add_all(
            [
                models["states"](id=1, name="Maine", abbreviation="ME"),
                models["houses"](id=1, name="Cozy", house_description="a house", state_id=1),
                models["condos"](id=1, name="Modern", condo_description="a condo"),
                models["authors"](
                    id=1, first_name="Stephen", state_id=1, dwelling_type="House", dwelling_id=1
                ),
                models["authors"](id=2, first_name="George", dwelling_type="Condo", dwelling_id=1),
                models["books"](id=1, title="The Shining", pages=500, author_id=1),
                models["books"](id=2, title="The Stand", pages=500, author_id=1),
                models["bios"](
                    id=1,
                    author_id=1,
                    description="author bio",
                    picture="imgur",
                    created_at=datetime.date(2017, 1, 1),
                ),
                models["hobbies"](id=1, name="Fishing", description="a hobby"),
                models["hobbies"](id=2, name="Woodworking", description="a hobby"),
                models["author_hobbies"](author_id=1, hobby_id=1),
                models["author_hobbies"](author_id=1, hobby_id=2),
            ]
        )
        session.flush()
        yield session
        session.close()

    @pytest.fixture
    def adapter(self, session, models):
        return SQLAStorageAdapter(session, models)

    @pytest.fixture
    def registry(self):
        return build_registry()

    @pytest.fixture
    def target(self, registry, adapter):
        return Sideloader(registry, adapter)

    def test_query_building(self, adapter, registry):
        scope = adapter.base_scope(registry.get_resource("books"))
        scope = adapter.filter(scope, "author_id", {1})
        scope = adapter.order(scope, "title", Direction.DESC)
        scope = adapter.order(scope, "id", Direction.ASC)
        scope = adapter.paginate(scope, 1, 1)
        records = adapter.resolve(scope)
        assert [(r.id, adapter.attribute(r, "title")) for r in records] == [(2, "The Stand")]

    def test_unknown_model(self, adapter):
        with pytest.raises(ExecutionError):
            adapter.join_scope("author_tags")

    def test_basic_sorting(self, target):
        doc = target.render("authors", {"sort": "-id"})
        assert ids_of(doc["data"]) == ["2", "1"]

    def test_basic_pagination(self, target):
        doc = target.render("authors", {"page": {"number": 2, "size": 1}})
        assert ids_of(doc["data"]) == ["2"]

    def test_whitelisted_filters(self, target):
        doc = target.render("authors", {"filter": {"first_name": "George"}})
        assert ids_of(doc["data"]) == ["2"]

    def test_basic_sideloading(self, target):
        doc = target.render("authors", {"include": "books"})
        assert {r["type"] for r in doc["included"]} == {"books"}

    def test_has_many_pagination(self, target):
        doc = target.render(
            "authors", {"include": "books", "page": {"books": {"size": 1, "number": 2}}}
        )
        assert ids_of(included_of(doc, "books")) == ["2"]

    def test_has_many_sorting(self, target):
        doc = target.render("authors", {"include": "books", "sort": "-books.title"})
        assert ids_of(included_of(doc, "books")) == ["2", "1"]

    def test_has_many_filtering(self, target):
        doc = target.render("authors", {"include": "books", "filter": {"books": {"id": 2}}})
        assert ids_of(included_of(doc, "books")) == ["2"]

    def test_has_many_extra_fields(self, target):
        doc = target.render(
            "authors", {"include": "books", "extra_fields": {"books": "alternate_title"}}
        )
        book = included_of(doc, "books")[0]
        assert book["attributes"]["title"] == "The Shining"
        assert book["attributes"]["pages"] == 500
        assert book["attributes"]["alternate_title"] == "alt title"

    def test_has_many_sparse_fieldsets(self, target):
        doc = target.render("authors", {"include": "books", "fields": {"books": "pages"}})
        assert included_of(doc, "books")[0]["attributes"] == {"pages": 500}

    def test_belongs_to_extra_fields(self, target):
        doc = target.render(
            "authors", {"include": "state", "extra_fields": {"states": "population"}}
        )
        assert included_of(doc, "states")[0]["attributes"] == {
            "name": "Maine",
            "abbreviation": "ME",
            "population": 1_300_000,
        }

    def test_belongs_to_sparse_fieldsets(self, target):
        doc = target.render("authors", {"include": "state", "fields": {"states": "name"}})
        assert included_of(doc, "states")[0]["attributes"] == {"name": "Maine"}

    def test_has_one_extra_fields(self, target):
        doc = target.render("authors", {"include": "bio", "extra_fields": {"bios": "created_at"}})
        assert included_of(doc, "bios")[0]["attributes"] == {
            "description": "author bio",
            "picture": "imgur",
            "created_at": "2017-01-01",
        }

    def test_has_one_sparse_fieldsets(self, target):
        doc = target.render("authors", {"include": "bio", "fields": {"bios": "description"}})
        assert included_of(doc, "bios")[0]["attributes"] == {"description": "author bio"}

    def test_has_and_belongs_to_many_sorting(self, target):
        doc = target.render("authors", {"include": "hobbies", "sort": "-hobbies.name"})
        assert ids_of(included_of(doc, "hobbies")) == ["2", "1"]

    def test_has_and_belongs_to_many_filtering(self, target):
        doc = target.render("authors", {"include": "hobbies", "filter": {"hobbies": {"id": 2}}})
        assert ids_of(included_of(doc, "hobbies")) == ["2"]

    def test_has_and_belongs_to_many_extra_fields(self, target):
        doc = target.render(
            "authors", {"include": "hobbies", "extra_fields": {"hobbies": "reason"}}
        )
        hobby = included_of(doc, "hobbies")[0]
        assert hobby["attributes"]["name"] == "Fishing"
        assert hobby["attributes"]["description"] == "a hobby"
        assert hobby["attributes"]["reason"] == "hobby reason"

    def test_has_and_belongs_to_many_sparse_fieldsets(self, target):
        doc = target.render("authors", {"include": "hobbies", "fields": {"hobbies": "name"}})
        assert included_of(doc, "hobbies")[0]["attributes"] == {"name": "Fishing"}

    def test_polymorphic_belongs_to_extra_fields(self, target):
        doc = target.render(
            "authors",
            {
                "include": "dwelling",
                "extra_fields": {"houses": "house_price", "condos": "condo_price"},
            },
        )
        house = included_of(doc, "houses")[0]
        assert house["attributes"]["name"] == "Cozy"
        assert house["attributes"]["house_description"] == "a house"
        assert house["attributes"]["house_price"] == 1_000_000
        condo = included_of(doc, "condos")[0]
        assert condo["attributes"]["name"] == "Modern"
        assert condo["attributes"]["condo_description"] == "a condo"
        assert condo["attributes"]["condo_price"] == 500_000

    def test_polymorphic_belongs_to_sparse_fieldsets(self, target):
        doc = target.render(
            "authors",
            {"include": "dwelling", "fields": {"houses": "name", "condos": "condo_description"}},
        )
        assert included_of(doc, "houses")[0]["attributes"] == {"name": "Cozy"}
        assert included_of(doc, "condos")[0]["attributes"] == {"condo_description": "a condo"}

    def test_override(self, target):
        def paginate(adapter, scope, number, size):
            return scope.limit(1)

        doc = target.render("authors", {}, overrides=QueryOverrides(paginate=paginate))
        assert len(doc["data"]) == 1

    def test_storage_failure(self, target, session):
        session.execute(sa.text("DROP TABLE books"))
        with pytest.raises(ExecutionError) as e:
            target.render("authors", {"include": "books"})
        assert isinstance(e.value.__cause__, sa.exc.OperationalError)
