import abc
import typing

from .serde.utils import english_enumerate


class SideloadError(Exception, metaclass=abc.ABCMeta):
    status: typing.ClassVar[str] = "500"
    code: typing.ClassVar[str] = "internal_error"
    title: typing.ClassVar[str] = "Internal error"

    @property
    @abc.abstractmethod
    def message(self) -> str:
        ...  # pragma: nocover

    def __str__(self):
        return self.message


class InvalidDeclarationError(SideloadError):
    code = "invalid_declaration"
    title = "Invalid declaration"
    _message: str

    @property
    def message(self) -> str:
        return self._message

    def __init__(self, message: str):
        self._message = message


class QueryParameterError(SideloadError, metaclass=abc.ABCMeta):
    """
    The base of the errors detected while the request parameters get resolved.
    Any of them aborts the request before a single record is fetched.
    """

    status = "400"
    code = "invalid_parameter"
    title = "Invalid query parameter"
    resource: str
    parameter: typing.Optional[str]

    def __init__(self, resource: str, parameter: typing.Optional[str] = None):
        self.resource = resource
        self.parameter = parameter


class FilterNotAllowedError(QueryParameterError):
    code = "filter_not_allowed"
    title = "Filter not allowed"
    field: str
    allowed: typing.AbstractSet[str]

    @property
    def message(self) -> str:
        if self.allowed:
            allowed = english_enumerate(sorted(self.allowed), conj=", or ")
            return f'filter "{self.field}" is not allowed for "{self.resource}" (allowed: {allowed})'
        else:
            return f'filter "{self.field}" is not allowed for "{self.resource}"'

    def __init__(
        self,
        resource: str,
        field: str,
        allowed: typing.AbstractSet[str] = frozenset(),
        parameter: typing.Optional[str] = None,
    ):
        super().__init__(resource, parameter)
        self.field = field
        self.allowed = allowed


class InvalidParameterError(QueryParameterError):
    detail: str

    @property
    def message(self) -> str:
        return f'invalid parameter for "{self.resource}": {self.detail}'

    def __init__(self, resource: str, detail: str, parameter: typing.Optional[str] = None):
        super().__init__(resource, parameter)
        self.detail = detail


class UnsupportedPageSizeError(QueryParameterError):
    code = "unsupported_page_size"
    title = "Unsupported page size"
    size: int
    max_size: int

    @property
    def message(self) -> str:
        return f'requested page size {self.size} for "{self.resource}" exceeds the maximum of {self.max_size}'

    def __init__(
        self, resource: str, size: int, max_size: int, parameter: typing.Optional[str] = None
    ):
        super().__init__(resource, parameter)
        self.size = size
        self.max_size = max_size


class UnknownResourceTypeError(SideloadError):
    status = "400"
    code = "unknown_resource_type"
    title = "Unknown resource type"
    name: str

    @property
    def message(self) -> str:
        return f'no resource known as "{self.name}"'

    def __init__(self, name: str):
        self.name = name


class UnknownRelationshipError(SideloadError):
    status = "400"
    code = "unknown_relationship"
    title = "Unknown relationship"
    parameter: typing.ClassVar[typing.Optional[str]] = "include"
    resource: str
    name: str
    path: typing.Sequence[str]

    @property
    def message(self) -> str:
        if len(self.path) > 1:
            return f'relationship ({self.name}) is not declared in "{self.resource}" (include path: {".".join(self.path)})'
        return f'relationship ({self.name}) is not declared in "{self.resource}"'

    def __init__(self, resource: str, name: str, path: typing.Sequence[str] = ()):
        self.resource = resource
        self.name = name
        self.path = tuple(path) if path else (name,)


class UnmappedPolymorphicGroupError(SideloadError):
    code = "unmapped_polymorphic_group"
    title = "Unmapped polymorphic group"
    resource: str
    relationship: str
    group: typing.Any
    known_groups: typing.Sequence[typing.Any]

    @property
    def message(self) -> str:
        known = english_enumerate((repr(g) for g in self.known_groups), conj=", or ")
        return (
            f'relationship ({self.relationship}) in "{self.resource}" has no target for group '
            f"{self.group!r} (known groups: {known})"
        )

    def __init__(
        self,
        resource: str,
        relationship: str,
        group: typing.Any,
        known_groups: typing.Iterable[typing.Any] = (),
    ):
        self.resource = resource
        self.relationship = relationship
        self.group = group
        self.known_groups = tuple(known_groups)


class ExecutionError(SideloadError):
    code = "execution_error"
    title = "Execution error"
    resource: typing.Optional[str]
    detail: str

    @property
    def message(self) -> str:
        if self.resource is not None:
            return f'failed to fetch "{self.resource}": {self.detail}'
        return f"failed to fetch: {self.detail}"

    def __init__(self, detail: str, resource: typing.Optional[str] = None):
        self.detail = detail
        self.resource = resource
