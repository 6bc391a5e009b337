import pytest

from ..exceptions import (
    InvalidDeclarationError,
    UnknownRelationshipError,
    UnknownResourceTypeError,
)
from ..models import (
    KeyDirection,
    ManyToManyRelationshipDescriptor,
    PolymorphicToOneRelationshipDescriptor,
    RelationshipKind,
    ToOneRelationshipDescriptor,
)
from ..registry import RegistryBuilder, RegistryConfig
from .testing import build_registry


class TestRegistryBuilder:
    @pytest.fixture
    def target(self):
        builder = RegistryBuilder()
        builder.register_resource("authors", attributes=["first_name"])
        return builder

    def test_forward_reference(self, target):
        target.has_many("authors", "books", resource="books", foreign_key="author_id")
        target.register_resource("books", attributes=["title"])
        registry = target.build()
        rel = registry.get_relationship("authors", "books")
        assert rel.kind is RelationshipKind.TO_MANY
        assert rel.destination is registry.get_resource("books")
        assert rel.parent is registry.get_resource("authors")

    def test_register_relationship(self, target):
        states = target.register_resource("states", attributes=["name"])
        descr = ToOneRelationshipDescriptor("state", states, "state_id", KeyDirection.PARENT)
        assert target.register_relationship("authors", "state", descr) is descr
        assert target.build().get_relationship("authors", "state") is descr

    def test_register_relationship_name_mismatch(self, target):
        states = target.register_resource("states", attributes=["name"])
        descr = ToOneRelationshipDescriptor("state", states, "state_id", KeyDirection.PARENT)
        with pytest.raises(InvalidDeclarationError):
            target.register_relationship("authors", "home_state", descr)

    def test_unresolved_reference(self, target):
        target.has_many("authors", "books", resource="books", foreign_key="author_id")
        with pytest.raises(InvalidDeclarationError) as e:
            target.build()
        assert "books" in e.value.message

    def test_duplicate_resource(self, target):
        with pytest.raises(InvalidDeclarationError):
            target.register_resource("authors")

    def test_duplicate_relationship(self, target):
        target.register_resource("states")
        target.belongs_to("authors", "state", resource="states", foreign_key="state_id")
        with pytest.raises(InvalidDeclarationError):
            target.belongs_to("authors", "state", resource="states", foreign_key="state_id")

    def test_unregistered_owner(self, target):
        with pytest.raises(InvalidDeclarationError):
            target.belongs_to("books", "author", resource="authors", foreign_key="author_id")

    def test_empty_polymorphic_groups(self, target):
        with pytest.raises(InvalidDeclarationError):
            target.polymorphic_belongs_to("authors", "dwelling", group_by=lambda r: None, groups={})

    def test_polymorphic_group_lacks_foreign_key(self, target):
        target.register_resource("houses")
        with pytest.raises(InvalidDeclarationError):
            target.polymorphic_belongs_to(
                "authors",
                "dwelling",
                group_by=lambda r: "House",
                groups={"House": {"resource": "houses"}},
            )

    def test_resource_of_another_builder(self, target):
        other = RegistryBuilder().register_resource("books")
        with pytest.raises(InvalidDeclarationError):
            target.has_many("authors", "books", resource=other, foreign_key="author_id")

    def test_no_declaration_after_build(self, target):
        target.build()
        with pytest.raises(InvalidDeclarationError):
            target.register_resource("books")

    def test_config(self):
        config = RegistryConfig(default_page_size=5)
        registry = RegistryBuilder(config).build()
        assert registry.config is config
        assert len(registry) == 0


class TestRegistry:
    @pytest.fixture
    def target(self):
        return build_registry()

    def test_lookup(self, target):
        assert "authors" in target
        assert "publishers" not in target
        assert list(target) == [
            "authors",
            "books",
            "states",
            "bios",
            "hobbies",
            "houses",
            "condos",
        ]
        with pytest.raises(UnknownResourceTypeError):
            target.get_resource("publishers")
        with pytest.raises(UnknownRelationshipError):
            target.get_relationship("authors", "publisher")

    def test_relationship_kinds(self, target):
        authors = target.get_resource("authors")
        state = authors.relationships["state"]
        assert isinstance(state, ToOneRelationshipDescriptor)
        assert state.key_direction is KeyDirection.PARENT
        bio = authors.relationships["bio"]
        assert isinstance(bio, ToOneRelationshipDescriptor)
        assert bio.key_direction is KeyDirection.CHILD
        hobbies = authors.relationships["hobbies"]
        assert isinstance(hobbies, ManyToManyRelationshipDescriptor)
        assert (hobbies.parent_key, hobbies.child_key) == ("author_id", "hobby_id")
        dwelling = authors.relationships["dwelling"]
        assert isinstance(dwelling, PolymorphicToOneRelationshipDescriptor)
        assert [t.resource.name for t in dwelling.targets] == ["houses", "condos"]

    def test_relationships_are_read_only(self, target):
        with pytest.raises(TypeError):
            target.get_resource("authors").relationships["x"] = None

    def test_resources_are_frozen(self, target):
        authors = target.get_resource("authors")
        descr = ToOneRelationshipDescriptor("spouse", authors, "spouse_id", KeyDirection.PARENT)
        with pytest.raises(InvalidDeclarationError):
            authors._add_relationship(descr)
        assert "spouse" not in authors.relationships
