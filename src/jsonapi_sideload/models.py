import enum
import types
import typing
from collections import OrderedDict

from .deferred import Deferred, resolve
from .exceptions import InvalidDeclarationError, UnknownRelationshipError

if typing.TYPE_CHECKING:
    from .interfaces import StorageAdapter  # noqa: F401

Scope = typing.Any
GroupKey = typing.Hashable

BaseScopeProvider = typing.Callable[["StorageAdapter"], Scope]
ScopeProvider = typing.Callable[
    ["StorageAdapter", "ResourceDefinition", str, typing.FrozenSet[typing.Any]], Scope
]
JoinScopeProvider = typing.Callable[["StorageAdapter"], Scope]
Discriminator = typing.Callable[[typing.Any], GroupKey]


class Direction(enum.Enum):
    ASC = "asc"
    DESC = "desc"


class RelationshipKind(enum.Enum):
    TO_ONE = "to_one"
    TO_MANY = "to_many"
    MANY_TO_MANY = "many_to_many"
    POLYMORPHIC_TO_ONE = "polymorphic_to_one"


class KeyDirection(enum.Enum):
    CHILD = "child"
    """The foreign key lives on the child records and points at the parent's identity."""
    PARENT = "parent"
    """The foreign key lives on the parent records and points at the child's identity."""


class SortKey(typing.NamedTuple):
    field: str
    direction: Direction = Direction.ASC

    def __str__(self) -> str:
        return ("-" if self.direction is Direction.DESC else "") + self.field


def keyed_scope(
    adapter: "StorageAdapter",
    resource: "ResourceDefinition",
    key_field: str,
    keys: typing.FrozenSet[typing.Any],
) -> Scope:
    """
    The default scope provider. Narrows the base scope of ``resource`` down to
    the records whose ``key_field`` is one of ``keys``.
    """
    return adapter.filter(resource.scope(adapter), key_field, keys)


class ResourceDefinition:
    """
    A :py:class:`ResourceDefinition` holds information about a resource type.

    :param str name: The unique type name of the resource.
    :param Iterable[str] attributes: The attributes rendered by default, in order.
    :param Iterable[str] extra_attributes: The attributes rendered only when a request asks for them through ``extra_fields``.
    :param Iterable[str] allowed_filters: The fields a client may filter the resource by.
    :param Optional[BaseScopeProvider] base_scope: A callable that yields the base scope out of the storage adapter. When omitted, ``adapter.base_scope()`` is used.
    :param Iterable[SortKey] default_sort: The sort applied when a request specifies none.
    :param str id_attribute: The name of the identity attribute.
    """

    name: str
    """
    The name of the resource.
    """
    attributes: typing.Tuple[str, ...]
    extra_attributes: typing.Tuple[str, ...]
    allowed_filters: typing.FrozenSet[str]
    default_sort: typing.Tuple[SortKey, ...]
    id_attribute: str
    _base_scope: typing.Optional[BaseScopeProvider]
    _relationships: typing.MutableMapping[str, "RelationshipDescriptor"]
    _frozen: bool

    @property
    def relationships(self) -> typing.Mapping[str, "RelationshipDescriptor"]:
        """
        The mapping of relationship names to :py:class:`RelationshipDescriptor`s.
        """
        return types.MappingProxyType(self._relationships)

    def get_relationship(
        self, name: str, path: typing.Sequence[str] = ()
    ) -> "RelationshipDescriptor":
        try:
            return self._relationships[name]
        except KeyError:
            raise UnknownRelationshipError(self.name, name, path)

    def _add_relationship(self, rel: "RelationshipDescriptor") -> None:
        if self._frozen:
            raise InvalidDeclarationError(
                f'"{self.name}" belongs to a built registry and cannot take relationship ({rel.name})'
            )
        self._relationships[rel.name] = rel.bind(self)

    def _freeze(self) -> None:
        self._frozen = True

    def scope(self, adapter: "StorageAdapter") -> Scope:
        if self._base_scope is not None:
            return self._base_scope(adapter)
        return adapter.base_scope(self)

    def knows(self, field: str) -> bool:
        return field in self.attributes or field in self.extra_attributes

    def sortable(self, field: str) -> bool:
        return field == self.id_attribute or self.knows(field)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    def __init__(
        self,
        name: str,
        attributes: typing.Iterable[str] = (),
        extra_attributes: typing.Iterable[str] = (),
        allowed_filters: typing.Iterable[str] = (),
        base_scope: typing.Optional[BaseScopeProvider] = None,
        default_sort: typing.Iterable[SortKey] = (),
        id_attribute: str = "id",
    ) -> None:
        self.name = name
        self.attributes = tuple(attributes)
        self.extra_attributes = tuple(extra_attributes)
        self.allowed_filters = frozenset(allowed_filters)
        self._base_scope = base_scope
        self.default_sort = tuple(default_sort)
        self.id_attribute = id_attribute
        self._relationships = OrderedDict()
        self._frozen = False


ResourceRef = typing.Union[ResourceDefinition, Deferred[ResourceDefinition]]


class RelationshipTarget:
    """
    One possible destination of a relationship: the resource on the other side,
    the key that connects both sides, and the scope provider that fetches it.
    """

    foreign_key: str
    scope: ScopeProvider
    _resource: ResourceRef

    @property
    def resource(self) -> ResourceDefinition:
        return resolve(self._resource)

    def __init__(self, resource: ResourceRef, foreign_key: str, scope: ScopeProvider = keyed_scope):
        self._resource = resource
        self.foreign_key = foreign_key
        self.scope = scope


class RelationshipDescriptor:
    parent: typing.Optional[ResourceDefinition] = None
    name: str
    kind: typing.ClassVar[RelationshipKind]

    T = typing.TypeVar("T", bound="RelationshipDescriptor")

    def bind(self: T, parent: ResourceDefinition) -> T:
        self.parent = parent
        return self

    @property
    def targets(self) -> typing.Sequence[RelationshipTarget]:
        """
        Every target the relationship may lead to.
        """
        raise NotImplementedError()

    def __repr__(self) -> str:
        owner = self.parent.name if self.parent is not None else "?"
        return f"{type(self).__name__}({owner}.{self.name})"

    def __init__(self, name: str):
        self.name = name


class KeyedRelationshipDescriptor(RelationshipDescriptor):
    target: RelationshipTarget
    key_direction: KeyDirection

    @property
    def destination(self) -> ResourceDefinition:
        return self.target.resource

    @property
    def foreign_key(self) -> str:
        return self.target.foreign_key

    @property
    def targets(self) -> typing.Sequence[RelationshipTarget]:
        return (self.target,)

    def __init__(
        self,
        name: str,
        destination: ResourceRef,
        foreign_key: str,
        key_direction: KeyDirection,
        scope: ScopeProvider = keyed_scope,
    ):
        super().__init__(name)
        self.target = RelationshipTarget(destination, foreign_key, scope)
        self.key_direction = key_direction


class ToOneRelationshipDescriptor(KeyedRelationshipDescriptor):
    kind = RelationshipKind.TO_ONE


class ToManyRelationshipDescriptor(KeyedRelationshipDescriptor):
    kind = RelationshipKind.TO_MANY


class ManyToManyRelationshipDescriptor(RelationshipDescriptor):
    """
    A relationship that goes through a join scope (an association table).
    ``parent_key`` and ``child_key`` are the join-side columns that refer to
    the parent's identity and the child's identity respectively.
    """

    kind = RelationshipKind.MANY_TO_MANY
    target: RelationshipTarget
    through: JoinScopeProvider
    parent_key: str
    child_key: str

    @property
    def destination(self) -> ResourceDefinition:
        return self.target.resource

    @property
    def targets(self) -> typing.Sequence[RelationshipTarget]:
        return (self.target,)

    def __init__(
        self,
        name: str,
        destination: ResourceRef,
        through: JoinScopeProvider,
        parent_key: str,
        child_key: str,
        scope: ScopeProvider = keyed_scope,
    ):
        super().__init__(name)
        # the target is always looked up by its own identity
        self.target = RelationshipTarget(destination, "", scope)
        self.through = through
        self.parent_key = parent_key
        self.child_key = child_key


class PolymorphicToOneRelationshipDescriptor(RelationshipDescriptor):
    """
    A to-one relationship whose target resource is picked per parent record:
    ``discriminator`` maps a parent record to a group key, and ``groups`` maps
    each group key to its :py:class:`RelationshipTarget`. The foreign key of
    every group lives on the parent.
    """

    kind = RelationshipKind.POLYMORPHIC_TO_ONE
    discriminator: Discriminator
    groups: typing.Mapping[GroupKey, RelationshipTarget]

    @property
    def targets(self) -> typing.Sequence[RelationshipTarget]:
        return tuple(self.groups.values())

    def __init__(
        self,
        name: str,
        discriminator: Discriminator,
        groups: typing.Mapping[GroupKey, RelationshipTarget],
    ):
        super().__init__(name)
        self.discriminator = discriminator
        self.groups = OrderedDict(groups)
