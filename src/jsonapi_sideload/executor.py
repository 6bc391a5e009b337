import dataclasses
import logging
import typing

from .exceptions import ExecutionError, SideloadError
from .interfaces import FilterStrategy, PaginationStrategy, SortStrategy, StorageAdapter
from .models import ResourceDefinition, Scope
from .planner import JoinPlanNode
from .query import QuerySpec
from .registry import RegistryConfig

logger = logging.getLogger(__name__)

T = typing.TypeVar("T")


@dataclasses.dataclass(frozen=True)
class QueryOverrides:
    """
    Per-request replacements for the default query steps.  Any step left
    ``None`` falls back to the strategy configured in :py:class:`RegistryConfig`.
    """

    paginate: typing.Optional[PaginationStrategy] = None
    sort: typing.Optional[SortStrategy] = None
    filter: typing.Optional[FilterStrategy] = None


NO_OVERRIDES = QueryOverrides()


class QueryExecutor:
    """
    Turns a :py:class:`QuerySpec` into the logical sequence of adapter calls:
    filter, order, paginate, then resolve.  Nothing is ever retried.
    """

    adapter: StorageAdapter
    config: RegistryConfig

    def guard(
        self, resource_name: str, fn: typing.Callable[..., T], *args: typing.Any
    ) -> T:
        """
        Calls ``fn`` and reports anything but a library error as :py:class:`ExecutionError`.
        """
        try:
            return fn(*args)
        except SideloadError:
            raise
        except Exception as e:
            raise ExecutionError(str(e) or type(e).__name__, resource_name) from e

    def build_scope(
        self,
        resource: ResourceDefinition,
        scope: Scope,
        spec: QuerySpec,
        overrides: typing.Optional[QueryOverrides] = None,
    ) -> Scope:
        overrides = overrides or NO_OVERRIDES
        filter_ = overrides.filter or self.config.filter
        sort = overrides.sort or self.config.sort
        paginate = overrides.paginate or self.config.paginate

        for field, values in spec.filters.items():
            scope = self.guard(resource.name, filter_, self.adapter, scope, field, values)
        for key in spec.sort or resource.default_sort:
            scope = self.guard(resource.name, sort, self.adapter, scope, key.field, key.direction)
        if spec.page is not None:
            scope = self.guard(
                resource.name, paginate, self.adapter, scope, spec.page.number, spec.page.size
            )
        return scope

    def execute(
        self,
        resource: ResourceDefinition,
        scope: Scope,
        spec: QuerySpec,
        overrides: typing.Optional[QueryOverrides] = None,
    ) -> typing.List[typing.Any]:
        """
        Applies the query spec to the scope and resolves it.

        :param ResourceDefinition resource: The resource the scope belongs to.
        :param Scope scope: The scope to start with.
        :param QuerySpec spec: The query spec for the resource.
        :param Optional[QueryOverrides] overrides: The overrides for this request.
        :return: The ordered list of records.
        """
        scope = self.build_scope(resource, scope, spec, overrides)
        records = list(self.guard(resource.name, self.adapter.resolve, scope))
        logger.debug("fetched %d %s (page: %s)", len(records), resource.name, spec.page)
        return records

    def execute_join(self, join: JoinPlanNode) -> None:
        """
        Fetches the join rows of a many-to-many relationship and populates its mapping.
        """
        rel = join.relationship
        if not join.parent_keys:
            join.populate(self.adapter, ())
            return
        scope = self.guard(rel.name, rel.through, self.adapter)
        scope = self.guard(rel.name, self.adapter.filter, scope, rel.parent_key, join.parent_keys)
        rows = self.guard(rel.name, self.adapter.resolve, scope)
        join.populate(self.adapter, rows)
        logger.debug("fetched %d join rows for %s", len(rows), rel.name)

    def __init__(self, adapter: StorageAdapter, config: RegistryConfig):
        self.adapter = adapter
        self.config = config
