"""
This package contains the interface definition that needs to be
implemented by the storage-dependent backend provider.

"""
import abc
import typing

from .models import Direction, ResourceDefinition, Scope


class StorageAdapter(metaclass=abc.ABCMeta):
    """
    A :py:class:`StorageAdapter` is the only piece that knows how scopes are
    physically executed.  The query executor drives it through the logical
    sequence filter, order, paginate, then resolve.

    Scopes are opaque to the rest of the library and must be treated as
    immutable: every narrowing method returns a new scope.
    """

    @abc.abstractmethod
    def base_scope(self, resource: ResourceDefinition) -> Scope:
        """
        Returns the scope that covers every record of the resource.

        :param ResourceDefinition resource: The resource in question.
        :return: An implementation-dependent scope object.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def join_scope(self, name: str) -> Scope:
        """
        Returns the scope that covers every row of the join (association) collection
        known as ``name``.  Used by many-to-many relationships.

        :param str name: The name of the join collection.
        :return: An implementation-dependent scope object.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def filter(self, scope: Scope, field: str, values: typing.AbstractSet[typing.Any]) -> Scope:
        """
        Narrows the scope to the records whose ``field`` equals any of ``values``.

        :param Scope scope: The scope to narrow.
        :param str field: The field name.
        :param AbstractSet[Any] values: The accepted values.
        :return: The narrowed scope.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def order(self, scope: Scope, field: str, direction: Direction) -> Scope:
        """
        Appends a sort key to the scope.  Sort keys apply in the order they are appended,
        the first one being the most significant.

        :param Scope scope: The scope to sort.
        :param str field: The field name.
        :param Direction direction: The direction.
        :return: The sorted scope.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def paginate(self, scope: Scope, number: int, size: int) -> Scope:
        """
        Restricts the scope to a single page.

        :param Scope scope: The scope to paginate.
        :param int number: The 1-based page number.
        :param int size: The page size.
        :return: The paginated scope.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def resolve(self, scope: Scope) -> typing.List[typing.Any]:
        """
        Executes the scope.  Failures must be reported as :py:class:`ExecutionError`.

        :param Scope scope: The scope to execute.
        :return: The ordered list of records.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    def attribute(self, record: typing.Any, name: str) -> typing.Any:
        """
        Fetches the value of an attribute from a record.

        :param Any record: A record returned by :py:meth:`resolve`.
        :param str name: The attribute name.
        :return: The value.
        """
        ...  # pragma: nocover


class PaginationStrategy(typing.Protocol):
    def __call__(self, adapter: StorageAdapter, scope: Scope, number: int, size: int) -> Scope:
        ...  # pragma: nocover


class SortStrategy(typing.Protocol):
    def __call__(
        self, adapter: StorageAdapter, scope: Scope, field: str, direction: Direction
    ) -> Scope:
        ...  # pragma: nocover


class FilterStrategy(typing.Protocol):
    def __call__(
        self,
        adapter: StorageAdapter,
        scope: Scope,
        field: str,
        values: typing.AbstractSet[typing.Any],
    ) -> Scope:
        ...  # pragma: nocover


def default_paginate(adapter: StorageAdapter, scope: Scope, number: int, size: int) -> Scope:
    return adapter.paginate(scope, number, size)


def default_sort(adapter: StorageAdapter, scope: Scope, field: str, direction: Direction) -> Scope:
    return adapter.order(scope, field, direction)


def default_filter(
    adapter: StorageAdapter, scope: Scope, field: str, values: typing.AbstractSet[typing.Any]
) -> Scope:
    return adapter.filter(scope, field, values)
