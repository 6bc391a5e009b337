"""
A storage adapter over plain Python sequences.

Records can be mappings or arbitrary objects; attribute access falls back from
item lookup to :py:func:`getattr`.  Scopes are immutable and record the
requested operations, which only take effect in :py:meth:`MemoryStorageAdapter.resolve`.
"""
import collections.abc
import dataclasses
import logging
import typing

from ...exceptions import ExecutionError
from ...interfaces import StorageAdapter
from ...models import Direction, ResourceDefinition

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class MemoryScope:
    name: str
    records: typing.Tuple[typing.Any, ...]
    filters: typing.Tuple[typing.Tuple[str, typing.FrozenSet[typing.Any]], ...] = ()
    orders: typing.Tuple[typing.Tuple[str, Direction], ...] = ()
    page: typing.Optional[typing.Tuple[int, int]] = None


def _matches(value: typing.Any, values: typing.FrozenSet[typing.Any]) -> bool:
    try:
        if value in values:
            return True
    except TypeError:
        pass
    # request parameters arrive as strings
    return str(value) in {str(v) for v in values}


def _sort_key(value: typing.Any) -> typing.Tuple[typing.Any, ...]:
    return () if value is None else (value,)


class MemoryStorageAdapter(StorageAdapter):
    """
    :param Mapping[str, Sequence[Any]] collections: The records of each resource type
        and each join collection, keyed by name.
    """

    collections: typing.Mapping[str, typing.Sequence[typing.Any]]

    def _scope_of(self, name: str) -> MemoryScope:
        try:
            records = self.collections[name]
        except KeyError:
            raise ExecutionError(f'no collection named "{name}"', name)
        return MemoryScope(name=name, records=tuple(records))

    def base_scope(self, resource: ResourceDefinition) -> MemoryScope:
        return self._scope_of(resource.name)

    def join_scope(self, name: str) -> MemoryScope:
        return self._scope_of(name)

    def filter(
        self, scope: MemoryScope, field: str, values: typing.AbstractSet[typing.Any]
    ) -> MemoryScope:
        return dataclasses.replace(scope, filters=scope.filters + ((field, frozenset(values)),))

    def order(self, scope: MemoryScope, field: str, direction: Direction) -> MemoryScope:
        return dataclasses.replace(scope, orders=scope.orders + ((field, direction),))

    def paginate(self, scope: MemoryScope, number: int, size: int) -> MemoryScope:
        return dataclasses.replace(scope, page=(number, size))

    def resolve(self, scope: MemoryScope) -> typing.List[typing.Any]:
        records = [
            r
            for r in scope.records
            if all(_matches(self.attribute(r, field), values) for field, values in scope.filters)
        ]
        # the first sort key is the most significant one, hence the reversed stable sorts
        for field, direction in reversed(scope.orders):
            try:
                records.sort(
                    key=lambda r: _sort_key(self.attribute(r, field)),
                    reverse=direction is Direction.DESC,
                )
            except TypeError as e:
                raise ExecutionError(f'cannot sort by "{field}": {e}', scope.name) from e
            # nulls last in either direction
            records.sort(key=lambda r: self.attribute(r, field) is None)
        if scope.page is not None:
            number, size = scope.page
            offset = (number - 1) * size
            records = records[offset : offset + size]
        logger.debug("resolved %d records out of %s", len(records), scope.name)
        return records

    def attribute(self, record: typing.Any, name: str) -> typing.Any:
        if isinstance(record, collections.abc.Mapping):
            return record[name]
        return getattr(record, name)

    def __init__(self, collections: typing.Mapping[str, typing.Sequence[typing.Any]]):
        self.collections = collections
