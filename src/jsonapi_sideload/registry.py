"""
The resource registry: an immutable catalog of resource types and the
relationships between them.

Synopsis
--------

.. code-block:: python

   builder = RegistryBuilder()
   builder.register_resource("authors", attributes=["first_name"], allowed_filters=["first_name"])
   builder.register_resource("books", attributes=["title", "pages"], allowed_filters=["id"])
   builder.has_many("authors", "books", resource="books", foreign_key="author_id")
   registry = builder.build()

"""
import dataclasses
import logging
import typing
from collections import OrderedDict

from .deferred import Deferred
from .exceptions import InvalidDeclarationError, UnknownResourceTypeError
from .interfaces import (
    FilterStrategy,
    PaginationStrategy,
    SortStrategy,
    StorageAdapter,
    default_filter,
    default_paginate,
    default_sort,
)
from .models import (
    BaseScopeProvider,
    Discriminator,
    GroupKey,
    JoinScopeProvider,
    KeyDirection,
    ManyToManyRelationshipDescriptor,
    PolymorphicToOneRelationshipDescriptor,
    RelationshipDescriptor,
    RelationshipTarget,
    ResourceDefinition,
    ResourceRef,
    Scope,
    ScopeProvider,
    SortKey,
    ToManyRelationshipDescriptor,
    ToOneRelationshipDescriptor,
    keyed_scope,
)

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class RegistryConfig:
    default_page_size: int = 20
    max_page_size: int = 1000
    default_page_number: int = 1
    paginate: PaginationStrategy = default_paginate
    sort: SortStrategy = default_sort
    filter: FilterStrategy = default_filter


def join_table(name: str) -> JoinScopeProvider:
    """
    Returns a join scope provider that reads the join collection ``name`` off the storage adapter.
    """

    def _(adapter: StorageAdapter) -> Scope:
        return adapter.join_scope(name)

    _.__name__ = f"join_table_{name}"
    return _


class Registry:
    """
    A read-only catalog of :py:class:`ResourceDefinition`s.  Instances are produced
    by :py:meth:`RegistryBuilder.build` and never change afterwards.
    """

    config: RegistryConfig
    _resources: typing.Mapping[str, ResourceDefinition]

    def get_resource(self, name: str) -> ResourceDefinition:
        try:
            return self._resources[name]
        except KeyError:
            raise UnknownResourceTypeError(name)

    def get_relationship(self, owner: str, name: str) -> RelationshipDescriptor:
        return self.get_resource(owner).get_relationship(name)

    def __contains__(self, name: object) -> bool:
        return name in self._resources

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __init__(self, resources: typing.Mapping[str, ResourceDefinition], config: RegistryConfig):
        self._resources = resources
        self.config = config


class RegistryBuilder:
    config: RegistryConfig
    _resources: "OrderedDict[str, ResourceDefinition]"
    _built: bool

    def _ensure_not_built(self) -> None:
        if self._built:
            raise InvalidDeclarationError("registry has already been built")

    def _lookup(self, name: str) -> ResourceDefinition:
        try:
            return self._resources[name]
        except KeyError:
            raise InvalidDeclarationError(f'no resource known as "{name}"')

    def _owner(self, owner: str) -> ResourceDefinition:
        try:
            return self._resources[owner]
        except KeyError:
            raise InvalidDeclarationError(
                f'cannot declare a relationship on an unregistered resource "{owner}"'
            )

    def _ref(
        self, rel_name: str, resource: typing.Union[str, ResourceDefinition]
    ) -> ResourceRef:
        if isinstance(resource, ResourceDefinition):
            if self._resources.get(resource.name) is not resource:
                raise InvalidDeclarationError(
                    f'relationship ({rel_name}) refers to a resource "{resource.name}" that is not registered here'
                )
            return resource
        # forward references get resolved by build()
        return Deferred(self._lookup, resource)

    def register_resource(
        self,
        name: str,
        attributes: typing.Iterable[str] = (),
        extra_attributes: typing.Iterable[str] = (),
        allowed_filters: typing.Iterable[str] = (),
        base_scope: typing.Optional[BaseScopeProvider] = None,
        default_sort: typing.Iterable[SortKey] = (),
        id_attribute: str = "id",
    ) -> ResourceDefinition:
        self._ensure_not_built()
        if name in self._resources:
            raise InvalidDeclarationError(f'resource "{name}" is already registered')
        resource = ResourceDefinition(
            name=name,
            attributes=attributes,
            extra_attributes=extra_attributes,
            allowed_filters=allowed_filters,
            base_scope=base_scope,
            default_sort=default_sort,
            id_attribute=id_attribute,
        )
        self._resources[name] = resource
        logger.debug("registered resource %s", name)
        return resource

    def register_relationship(
        self, owner: str, name: str, descr: RelationshipDescriptor
    ) -> RelationshipDescriptor:
        """
        Declares the relationship ``name`` on the resource ``owner``.  The descriptor
        has to carry the same name.
        """
        self._ensure_not_built()
        owner_resource = self._owner(owner)
        if descr.name != name:
            raise InvalidDeclarationError(
                f'relationship ({name}) in "{owner}" is given a descriptor named "{descr.name}"'
            )
        if descr.name in owner_resource.relationships:
            raise InvalidDeclarationError(
                f'relationship ({descr.name}) is already declared in "{owner}"'
            )
        if isinstance(descr, PolymorphicToOneRelationshipDescriptor) and not descr.groups:
            raise InvalidDeclarationError(
                f'polymorphic relationship ({descr.name}) in "{owner}" requires at least one group'
            )
        owner_resource._add_relationship(descr)
        logger.debug("registered relationship %s.%s (%s)", owner, descr.name, descr.kind.value)
        return descr

    def has_many(
        self,
        owner: str,
        name: str,
        resource: typing.Union[str, ResourceDefinition],
        foreign_key: str,
        scope: ScopeProvider = keyed_scope,
    ) -> ToManyRelationshipDescriptor:
        descr = ToManyRelationshipDescriptor(
            name, self._ref(name, resource), foreign_key, KeyDirection.CHILD, scope
        )
        self.register_relationship(owner, name, descr)
        return descr

    def has_one(
        self,
        owner: str,
        name: str,
        resource: typing.Union[str, ResourceDefinition],
        foreign_key: str,
        scope: ScopeProvider = keyed_scope,
    ) -> ToOneRelationshipDescriptor:
        descr = ToOneRelationshipDescriptor(
            name, self._ref(name, resource), foreign_key, KeyDirection.CHILD, scope
        )
        self.register_relationship(owner, name, descr)
        return descr

    def belongs_to(
        self,
        owner: str,
        name: str,
        resource: typing.Union[str, ResourceDefinition],
        foreign_key: str,
        scope: ScopeProvider = keyed_scope,
    ) -> ToOneRelationshipDescriptor:
        descr = ToOneRelationshipDescriptor(
            name, self._ref(name, resource), foreign_key, KeyDirection.PARENT, scope
        )
        self.register_relationship(owner, name, descr)
        return descr

    def has_and_belongs_to_many(
        self,
        owner: str,
        name: str,
        resource: typing.Union[str, ResourceDefinition],
        through: typing.Union[str, JoinScopeProvider],
        parent_key: str,
        child_key: str,
        scope: ScopeProvider = keyed_scope,
    ) -> ManyToManyRelationshipDescriptor:
        descr = ManyToManyRelationshipDescriptor(
            name,
            self._ref(name, resource),
            join_table(through) if isinstance(through, str) else through,
            parent_key,
            child_key,
            scope,
        )
        self.register_relationship(owner, name, descr)
        return descr

    def polymorphic_belongs_to(
        self,
        owner: str,
        name: str,
        group_by: Discriminator,
        groups: typing.Mapping[GroupKey, typing.Mapping[str, typing.Any]],
    ) -> PolymorphicToOneRelationshipDescriptor:
        """
        Declares a polymorphic to-one relationship.  Each entry in ``groups`` is a mapping
        with ``resource`` and ``foreign_key`` keys, and optionally ``scope``.
        """
        targets: "OrderedDict[GroupKey, RelationshipTarget]" = OrderedDict()
        for group, entry in groups.items():
            try:
                resource = entry["resource"]
                foreign_key = entry["foreign_key"]
            except KeyError as e:
                raise InvalidDeclarationError(
                    f'group {group!r} of polymorphic relationship ({name}) in "{owner}" lacks {e.args[0]!r}'
                )
            targets[group] = RelationshipTarget(
                self._ref(name, resource), foreign_key, entry.get("scope", keyed_scope)
            )
        descr = PolymorphicToOneRelationshipDescriptor(name, group_by, targets)
        self.register_relationship(owner, name, descr)
        return descr

    def build(self) -> Registry:
        self._ensure_not_built()
        for resource in self._resources.values():
            for rel in resource.relationships.values():
                for target in rel.targets:
                    try:
                        target.resource
                    except InvalidDeclarationError as e:
                        raise InvalidDeclarationError(
                            f'relationship ({rel.name}) in "{resource.name}" cannot be resolved: {e.message}'
                        ) from e
        for resource in self._resources.values():
            resource._freeze()
        self._built = True
        logger.debug("registry built with %d resources", len(self._resources))
        return Registry(OrderedDict(self._resources), self.config)

    def __init__(self, config: typing.Optional[RegistryConfig] = None):
        self.config = config if config is not None else RegistryConfig()
        self._resources = OrderedDict()
        self._built = False
