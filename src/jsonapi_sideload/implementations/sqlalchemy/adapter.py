import logging
import typing

import sqlalchemy as sa  # type: ignore
from sqlalchemy import orm  # type: ignore

from ...exceptions import ExecutionError
from ...interfaces import StorageAdapter
from ...models import Direction, ResourceDefinition

logger = logging.getLogger(__name__)


class SQLAStorageAdapter(StorageAdapter):
    """
    A :py:class:`StorageAdapter` whose scopes are :py:class:`sqlalchemy.orm.Query` objects.

    :param orm.Session session: The session queries are issued through.
    :param Mapping[str, type] models: The mapped classes keyed by resource type name.
        Join collections used by many-to-many relationships are looked up here as well,
        so association tables need to be mapped too.
    """

    session: orm.Session
    models: typing.Mapping[str, type]

    def _model(self, name: str) -> type:
        try:
            return self.models[name]
        except KeyError:
            raise ExecutionError(f'no mapped class for "{name}"', name)

    def _column(self, query: orm.Query, field: str) -> typing.Any:
        entity = query.column_descriptions[0]["entity"]
        try:
            return getattr(entity, field)
        except AttributeError:
            raise ExecutionError(f'{entity.__name__} has no attribute "{field}"')

    def base_scope(self, resource: ResourceDefinition) -> orm.Query:
        return self.session.query(self._model(resource.name))

    def join_scope(self, name: str) -> orm.Query:
        return self.session.query(self._model(name))

    def filter(
        self, scope: orm.Query, field: str, values: typing.AbstractSet[typing.Any]
    ) -> orm.Query:
        return scope.filter(self._column(scope, field).in_(list(values)))

    def order(self, scope: orm.Query, field: str, direction: Direction) -> orm.Query:
        column = self._column(scope, field)
        return scope.order_by(column.desc() if direction is Direction.DESC else column.asc())

    def paginate(self, scope: orm.Query, number: int, size: int) -> orm.Query:
        return scope.limit(size).offset((number - 1) * size)

    def resolve(self, scope: orm.Query) -> typing.List[typing.Any]:
        try:
            return scope.all()
        except sa.exc.SQLAlchemyError as e:
            raise ExecutionError(str(e)) from e

    def attribute(self, record: typing.Any, name: str) -> typing.Any:
        return getattr(record, name)

    def __init__(self, session: orm.Session, models: typing.Mapping[str, type]):
        self.session = session
        self.models = models
