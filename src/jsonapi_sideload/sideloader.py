"""
The entry points of the library.

Synopsis
--------

.. code-block:: python

   sideloader = Sideloader(registry, SQLAStorageAdapter(session, {"authors": Author, "books": Book}))
   doc = sideloader.render(
       "authors",
       {
           "include": "books",
           "filter": {"books": {"id": "1"}},
           "fields": {"books": "title"},
       },
   )

"""
import logging
import typing

from .assembler import ResultAssembler
from .executor import QueryExecutor, QueryOverrides
from .interfaces import StorageAdapter
from .models import Scope
from .params import parse_include, split_request_params
from .planner import PlanNode, SideloadPlanner
from .query import QueryParameterResolver, QuerySpecs
from .registry import Registry
from .serde.types import MutableJSONObject
from .serializer import DocumentSerializer

logger = logging.getLogger(__name__)

Overrides = typing.Union[QueryOverrides, typing.Mapping[str, QueryOverrides]]


class Sideloader:
    """
    Wires the resolver, the planner, the executor, the assembler, and the serializer
    together for a single registry and storage adapter.  Instances hold no per-request
    state and can be shared.
    """

    registry: Registry
    adapter: StorageAdapter
    resolver: QueryParameterResolver
    planner: SideloadPlanner
    executor: QueryExecutor
    assembler: ResultAssembler
    serializer: DocumentSerializer

    def _normalize_overrides(
        self, base_type: str, overrides: typing.Optional[Overrides]
    ) -> typing.Mapping[str, QueryOverrides]:
        if overrides is None:
            return {}
        elif isinstance(overrides, QueryOverrides):
            return {base_type: overrides}
        else:
            return overrides

    def _execute(
        self,
        node: PlanNode,
        specs: QuerySpecs,
        overrides: typing.Mapping[str, QueryOverrides],
        base_scope: typing.Optional[Scope],
    ) -> None:
        resource = node.resource
        if node.parent is None:
            scope = (
                base_scope
                if base_scope is not None
                else self.executor.guard(resource.name, resource.scope, self.adapter)
            )
        else:
            if node.join is not None:
                self.executor.execute_join(node.join)
            scope = self.executor.guard(resource.name, self.planner.scope_for, node, self.adapter)
        if scope is None:
            logger.debug("skipped %r as there are no keys to look up", node)
            node.records = []
        else:
            node.records = self.executor.execute(
                resource, scope, node.query_spec, overrides.get(resource.name)
            )
        self.planner.resolve_deferred(node, self.adapter, specs)
        for child in node.children:
            self.planner.bind(child, self.adapter)
            self._execute(child, specs, overrides, None)
            self.assembler.attach(child, self.adapter)

    def execute(
        self,
        base_type: str,
        include: typing.Any,
        specs: typing.Optional[QuerySpecs] = None,
        base_scope: typing.Optional[Scope] = None,
        overrides: typing.Optional[Overrides] = None,
    ) -> PlanNode:
        """
        Plans and executes a request, returning the executed root :py:class:`PlanNode`.

        :param str base_type: The name of the base resource type.
        :param include: The include tree, or anything :py:func:`parse_include` accepts.
        :param Optional[QuerySpecs] specs: The resolved query specs.  Defaults apply when omitted.
        :param Optional[Scope] base_scope: A scope that replaces the base scope of the base type.
        :param overrides: A :py:class:`QueryOverrides` for the base type, or a mapping of type names to overrides.
        """
        if specs is None:
            specs = QuerySpecs(self.resolver.default_spec())
        root = self.planner.plan(base_type, parse_include(include), specs)
        self._execute(root, specs, self._normalize_overrides(base_type, overrides), base_scope)
        return root

    def sideload(
        self,
        base_type: str,
        include: typing.Any,
        specs: typing.Optional[QuerySpecs] = None,
        base_scope: typing.Optional[Scope] = None,
        overrides: typing.Optional[Overrides] = None,
    ) -> MutableJSONObject:
        if specs is None:
            specs = QuerySpecs(self.resolver.default_spec())
        root = self.execute(base_type, include, specs, base_scope, overrides)
        return self.serializer.render(root, specs.fields_by_type(), specs.extra_fields_by_type())

    def render(
        self,
        base_type: str,
        params: typing.Mapping[str, typing.Any],
        base_scope: typing.Optional[Scope] = None,
        overrides: typing.Optional[Overrides] = None,
    ) -> MutableJSONObject:
        """
        Renders the compound document for decoded JSON:API request parameters.
        Any library error propagates; use :py:meth:`DocumentSerializer.render_errors`
        to turn it into an error document.
        """
        bundles, include = split_request_params(self.registry, base_type, params)
        specs = self.resolver.resolve(base_type, bundles)
        logger.debug("rendering %s (include: %s)", base_type, ",".join(include) or "-")
        return self.sideload(base_type, include, specs, base_scope, overrides)

    def __init__(self, registry: Registry, adapter: StorageAdapter):
        self.registry = registry
        self.adapter = adapter
        self.resolver = QueryParameterResolver(registry)
        self.planner = SideloadPlanner(registry)
        self.executor = QueryExecutor(adapter, registry.config)
        self.assembler = ResultAssembler()
        self.serializer = DocumentSerializer(adapter)


def plan_and_execute(
    registry: Registry,
    adapter: StorageAdapter,
    base_type: str,
    include: typing.Any,
    specs: typing.Optional[QuerySpecs] = None,
    base_scope: typing.Optional[Scope] = None,
    overrides: typing.Optional[Overrides] = None,
) -> MutableJSONObject:
    """
    Fetches the base records and everything the include tree asks for, and renders
    them as a compound document of ``data`` and ``included``.
    """
    return Sideloader(registry, adapter).sideload(
        base_type, include, specs, base_scope, overrides
    )
