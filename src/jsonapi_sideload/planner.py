"""
The sideload planner turns an include tree into a tree of :py:class:`PlanNode`s.

Planning is two-phase.  :py:meth:`SideloadPlanner.plan` resolves every
relationship name of the include tree up front, so that an unknown name fails
the request before anything is fetched.  The key set of a child node, however,
can only be computed once its parent's records are known, which is what
:py:meth:`SideloadPlanner.bind` does.  Polymorphic relationships go one step
further: the target resource itself depends on the parent records, so their
child nodes are only created by :py:meth:`SideloadPlanner.resolve_deferred`.
"""
import dataclasses
import logging
import typing
from collections import OrderedDict

from .exceptions import UnknownRelationshipError, UnmappedPolymorphicGroupError
from .interfaces import StorageAdapter
from .models import (
    GroupKey,
    KeyDirection,
    KeyedRelationshipDescriptor,
    ManyToManyRelationshipDescriptor,
    PolymorphicToOneRelationshipDescriptor,
    RelationshipDescriptor,
    RelationshipTarget,
    ResourceDefinition,
    Scope,
)
from .query import QuerySpec, QuerySpecs, default_page
from .registry import Registry

logger = logging.getLogger(__name__)

IncludeTree = typing.Mapping[str, typing.Any]


def identity_of(
    adapter: StorageAdapter, resource: ResourceDefinition, record: typing.Any
) -> typing.Any:
    return adapter.attribute(record, resource.id_attribute)


class JoinPlanNode:
    """
    The auxiliary fetch of a many-to-many relationship.  It reads the join rows
    for a set of parent identities and keeps the parent-id to child-id mapping,
    in join row order.
    """

    relationship: ManyToManyRelationshipDescriptor
    parent_keys: typing.FrozenSet[typing.Any]
    mapping: typing.Optional["OrderedDict[typing.Any, typing.List[typing.Any]]"]

    @property
    def executed(self) -> bool:
        return self.mapping is not None

    @property
    def child_keys(self) -> typing.FrozenSet[typing.Any]:
        assert self.mapping is not None
        return frozenset(k for keys in self.mapping.values() for k in keys)

    def populate(self, adapter: StorageAdapter, rows: typing.Iterable[typing.Any]) -> None:
        mapping: "OrderedDict[typing.Any, typing.List[typing.Any]]" = OrderedDict()
        for row in rows:
            parent_key = adapter.attribute(row, self.relationship.parent_key)
            child_key = adapter.attribute(row, self.relationship.child_key)
            child_keys = mapping.setdefault(parent_key, [])
            if child_key not in child_keys:
                child_keys.append(child_key)
        self.mapping = mapping

    def __init__(
        self,
        relationship: ManyToManyRelationshipDescriptor,
        parent_keys: typing.FrozenSet[typing.Any],
    ):
        self.relationship = relationship
        self.parent_keys = parent_keys
        self.mapping = None


class PlanNode:
    """
    A :py:class:`PlanNode` stands for one fetch of one resource type.

    The root node has no parent and no relationship.  Every other node is linked
    to its parent through ``relationship``; ``target`` is the relationship target
    the node fetches, which for polymorphic relationships is the one picked for
    ``group``.
    """

    resource: ResourceDefinition
    query_spec: QuerySpec
    parent: typing.Optional["PlanNode"]
    relationship: typing.Optional[RelationshipDescriptor]
    target: typing.Optional[RelationshipTarget]
    group: typing.Optional[GroupKey]
    path: typing.Tuple[str, ...]
    children: typing.List["PlanNode"]
    deferred: typing.List[typing.Tuple[PolymorphicToOneRelationshipDescriptor, IncludeTree]]
    deferred_resolved: bool

    parent_records: typing.Optional[typing.List[typing.Any]]
    """The parent records this node is scoped to.  A subset of the parent's records for polymorphic groups."""
    key_field: typing.Optional[str]
    parent_keys: typing.Optional[typing.FrozenSet[typing.Any]]
    join: typing.Optional[JoinPlanNode]

    records: typing.Optional[typing.List[typing.Any]]
    links: "OrderedDict[typing.Any, typing.List[typing.Any]]"

    @property
    def name(self) -> typing.Optional[str]:
        return self.relationship.name if self.relationship is not None else None

    @property
    def executed(self) -> bool:
        return self.records is not None

    @property
    def bound(self) -> bool:
        return self.parent_keys is not None

    def walk(self) -> typing.Iterator["PlanNode"]:
        yield self
        for child in self.children:
            yield from child.walk()

    def __repr__(self) -> str:
        path = ".".join(self.path) or "(root)"
        if self.group is not None:
            return f"PlanNode({self.resource.name} at {path} for {self.group!r})"
        return f"PlanNode({self.resource.name} at {path})"

    def __init__(
        self,
        resource: ResourceDefinition,
        query_spec: QuerySpec,
        parent: typing.Optional["PlanNode"] = None,
        relationship: typing.Optional[RelationshipDescriptor] = None,
        target: typing.Optional[RelationshipTarget] = None,
        group: typing.Optional[GroupKey] = None,
        parent_records: typing.Optional[typing.List[typing.Any]] = None,
    ):
        self.resource = resource
        self.query_spec = query_spec
        self.parent = parent
        self.relationship = relationship
        self.target = target
        self.group = group
        self.path = (parent.path if parent is not None else ()) + (
            (relationship.name,) if relationship is not None else ()
        )
        self.children = []
        self.deferred = []
        self.deferred_resolved = False
        self.parent_records = parent_records
        self.key_field = None
        self.parent_keys = None
        self.join = None
        self.records = None
        self.links = OrderedDict()


class SideloadPlanner:
    registry: Registry

    def _validate_include(
        self,
        resources: typing.Sequence[ResourceDefinition],
        include: IncludeTree,
        path: typing.Tuple[str, ...],
    ) -> None:
        # a name below a polymorphic relationship only has to be declared by one of the groups
        for name, subtree in include.items():
            rels = [r.relationships[name] for r in resources if name in r.relationships]
            if not rels:
                raise UnknownRelationshipError(
                    "|".join(r.name for r in resources), name, path + (name,)
                )
            if subtree:
                destinations: "OrderedDict[str, ResourceDefinition]" = OrderedDict()
                for rel in rels:
                    for target in rel.targets:
                        destinations.setdefault(target.resource.name, target.resource)
                self._validate_include(list(destinations.values()), subtree, path + (name,))

    def _plan_children(self, node: PlanNode, include: IncludeTree, specs: QuerySpecs) -> None:
        for name, subtree in include.items():
            path = node.path + (name,)
            rel = node.resource.get_relationship(name, path)
            subtree = subtree or {}
            if isinstance(rel, PolymorphicToOneRelationshipDescriptor):
                self._validate_include([t.resource for t in rel.targets], subtree, path)
                node.deferred.append((rel, subtree))
                logger.debug("deferred polymorphic relationship %s", ".".join(path))
                continue
            assert isinstance(rel, (KeyedRelationshipDescriptor, ManyToManyRelationshipDescriptor))
            child = PlanNode(
                resource=rel.target.resource,
                query_spec=specs[rel.target.resource.name],
                parent=node,
                relationship=rel,
                target=rel.target,
            )
            node.children.append(child)
            logger.debug("planned %r", child)
            self._plan_children(child, subtree, specs)

    def plan(self, base_type: str, include: IncludeTree, specs: QuerySpecs) -> PlanNode:
        """
        Builds the plan for the base resource type and the include tree.

        :param str base_type: The name of the base resource type.
        :param IncludeTree include: The include tree.
        :param QuerySpecs specs: The resolved per-type query specs.
        :return: The root :py:class:`PlanNode`.
        """
        resource = self.registry.get_resource(base_type)
        spec = specs[base_type]
        # only the base type is paginated by default
        if spec.page is None:
            spec = dataclasses.replace(spec, page=default_page(self.registry.config))
        root = PlanNode(resource=resource, query_spec=spec)
        self._plan_children(root, include, specs)
        return root

    def resolve_deferred(
        self, node: PlanNode, adapter: StorageAdapter, specs: QuerySpecs
    ) -> typing.List[PlanNode]:
        """
        Creates the child nodes of the polymorphic relationships of an executed node,
        one per group that its records actually refer to.

        :return: The newly created child nodes.
        """
        assert node.records is not None, "the node has to be executed first"
        if node.deferred_resolved:
            return []
        created: typing.List[PlanNode] = []
        for rel, subtree in node.deferred:
            partitions: "OrderedDict[GroupKey, typing.List[typing.Any]]" = OrderedDict()
            for record in node.records:
                group = rel.discriminator(record)
                if group is None:
                    continue
                partitions.setdefault(group, []).append(record)
            for group, records in partitions.items():
                target = rel.groups.get(group)
                if target is None:
                    raise UnmappedPolymorphicGroupError(
                        node.resource.name, rel.name, group, rel.groups.keys()
                    )
                resource = target.resource
                child = PlanNode(
                    resource=resource,
                    query_spec=specs[resource.name],
                    parent=node,
                    relationship=rel,
                    target=target,
                    group=group,
                    parent_records=records,
                )
                self._plan_children(
                    child,
                    OrderedDict((k, v) for k, v in subtree.items() if k in resource.relationships),
                    specs,
                )
                node.children.append(child)
                created.append(child)
                logger.debug("resolved %r with %d parent records", child, len(records))
        node.deferred_resolved = True
        return created

    def bind(self, node: PlanNode, adapter: StorageAdapter) -> None:
        """
        Derives the key set of a child node from the records of its parent.
        """
        parent = node.parent
        assert parent is not None and parent.records is not None, "the parent has to be executed first"
        assert node.target is not None
        rel = node.relationship
        if node.parent_records is None:
            node.parent_records = parent.records
        if isinstance(rel, ManyToManyRelationshipDescriptor):
            node.key_field = node.resource.id_attribute
            node.join = JoinPlanNode(
                rel,
                frozenset(identity_of(adapter, parent.resource, r) for r in node.parent_records),
            )
            node.parent_keys = node.join.parent_keys
        elif isinstance(rel, KeyedRelationshipDescriptor) and rel.key_direction is KeyDirection.CHILD:
            node.key_field = node.target.foreign_key
            node.parent_keys = frozenset(
                identity_of(adapter, parent.resource, r) for r in node.parent_records
            )
        else:
            node.key_field = node.resource.id_attribute
            fk = node.target.foreign_key
            node.parent_keys = frozenset(
                v
                for v in (adapter.attribute(r, fk) for r in node.parent_records)
                if v is not None
            )

    def scope_for(self, node: PlanNode, adapter: StorageAdapter) -> typing.Optional[Scope]:
        """
        Returns the scope of a bound child node, constrained to its key set, or ``None``
        when the key set is empty and there is nothing to fetch.
        """
        assert node.target is not None and node.key_field is not None
        if node.join is not None:
            assert node.join.executed, "the join has to be executed first"
            keys = node.join.child_keys
        else:
            assert node.parent_keys is not None
            keys = node.parent_keys
        if not keys:
            return None
        return node.target.scope(adapter, node.resource, node.key_field, keys)

    def __init__(self, registry: Registry):
        self.registry = registry
