"""
Classes in :py:mod:`jsonapi_sideload.serde.models` are abstract representation of the elements of a JSON:API compound document.
"""

import dataclasses
import datetime
import decimal
import typing
from collections import OrderedDict


@dataclasses.dataclass
class Repr:
    """
    The base class for any model objects.
    """


@dataclasses.dataclass(init=False)
class MetaContainerRepr(Repr):
    """
    :py:class:`MetaContainerRepr` is an abstract base for classes containing ``meta`` node.
    """

    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)

    def __init__(self, *, meta: typing.Optional[typing.Dict[str, typing.Any]] = None):
        """
        :param Optional[Dict[str. Any]] meta: a dictionary containing user-defined information.
        """
        super().__init__()
        self.meta = meta if meta is not None else {}


@dataclasses.dataclass(init=False)
class ResourceIdRepr(MetaContainerRepr):
    """
    Instances of :py:class:`ResourceIdRepr` represent `Resource Identifier Objects <https://jsonapi.org/format/#document-resource-identifier-objects>`_
    """

    type: str  # type: ignore
    id: str  # type: ignore

    def __init__(
        self,
        *,
        type: str,
        id: str,
        meta: typing.Optional[typing.Dict[str, typing.Any]] = None,
    ):
        """
        :param str type: a value for ``type`` property.
        :param str id: a value for ``id`` property.
        :param Optional[Dict[str. Any]] meta: a dictionary containing user-defined information.
        """
        super().__init__(meta=meta)
        self.type = type
        self.id = id


@dataclasses.dataclass(init=False)
class LinkageRepr(MetaContainerRepr):
    """
    :py:class:`LinkageRepr` represents a `Resource Linkage <https://jsonapi.org/format/#document-resource-object-linkage>`_
    """

    data: typing.Union[None, ResourceIdRepr, typing.Sequence[ResourceIdRepr]] = None

    def __init__(
        self,
        *,
        data: typing.Union[None, ResourceIdRepr, typing.Sequence[ResourceIdRepr]],
        meta: typing.Optional[typing.Dict[str, typing.Any]] = None,
    ):
        """
        :param Union[None, ResourceIdRepr, Sequence[ResourceIdRepr]] data: a value for ``data`` property.
        :param Optional[Dict[str. Any]] meta: a dictionary containing user-defined information.
        """
        super().__init__(meta=meta)
        self.data = data


AttributeScalar = typing.Union[
    datetime.datetime, datetime.date, decimal.Decimal, str, int, float, bytes, None
]
AttributeValue = typing.Union[
    typing.Sequence[AttributeScalar],
    typing.Mapping[str, AttributeScalar],
    AttributeScalar,
]


@dataclasses.dataclass(init=False)
class ResourceRepr(MetaContainerRepr):
    """
    :py:class:`ResourceRepr` class represents a `Resource Object <https://jsonapi.org/format/#document-resource-objects>`_.
    """

    type: str  # type: ignore
    id: str  # type: ignore
    attributes: typing.Mapping[str, AttributeValue] = dataclasses.field(default_factory=OrderedDict)  # type: ignore
    relationships: typing.Mapping[str, LinkageRepr] = dataclasses.field(default_factory=OrderedDict)  # type: ignore

    def __getitem__(self, name):
        return self.attributes[name]

    def __init__(
        self,
        *,
        type: str,
        id: str,
        attributes: typing.Iterable[typing.Tuple[str, AttributeValue]],
        relationships: typing.Iterable[typing.Tuple[str, LinkageRepr]] = (),
        meta: typing.Optional[typing.Dict[str, typing.Any]] = None,
    ):
        """
        :param str type: a value for ``type`` property.
        :param str id: a value for ``id`` property.
        :param Iterable[Tuple[str, AttributeValue]] attributes: a sequence of tuples each of which represents a key-value pair of an attribute.
        :param Iterable[Tuple[str, LinkageRepr]] relationships: a sequence of tuples each of which represent a key-value pair of a relationship.
        :param Optional[Dict[str. Any]] meta: a dictionary containing user-defined information.
        """
        super().__init__(meta=meta)
        self.type = type
        self.id = id
        self.attributes = OrderedDict(attributes)
        self.relationships = OrderedDict(relationships)


@dataclasses.dataclass(init=False)
class SourceRepr(Repr):
    """
    :py:class:`SourceRepr` represents a value for the ``source`` property of an `Error Object <https://jsonapi.org/format/#error-objects>`_.
    """

    pointer: typing.Optional[str] = None
    parameter: typing.Optional[str] = None

    def __init__(
        self,
        pointer: typing.Optional[str] = None,
        parameter: typing.Optional[str] = None,
    ):
        super().__init__()
        self.pointer = pointer
        self.parameter = parameter


@dataclasses.dataclass
class ErrorRepr(MetaContainerRepr):
    status: typing.Optional[str] = None
    code: typing.Optional[str] = None
    title: typing.Optional[str] = None
    detail: typing.Optional[str] = None
    source: typing.Optional[SourceRepr] = None


@dataclasses.dataclass(init=False)
class CollectionDocumentRepr(MetaContainerRepr):
    data: typing.Sequence[ResourceRepr] = ()
    errors: typing.Sequence[ErrorRepr] = ()
    included: typing.Sequence[ResourceRepr] = ()

    def __init__(
        self,
        errors: typing.Optional[typing.Sequence[ErrorRepr]] = None,
        included: typing.Sequence[ResourceRepr] = (),
        meta: typing.Optional[typing.Dict[str, typing.Any]] = None,
        data: typing.Optional[typing.Sequence[ResourceRepr]] = None,
    ):
        """
        Either errors, meta, or data must take a non-None value.

        :param Optional[Sequence[ErrorRepr]]: a sequence of :py:class:`ErrorRepr`.
        :param Sequence[ResourceRepr]: a sequence of :py:class:`ResourceRepr` for the ``included`` section.
        :param Optional[Dict[str, Any]] meta: a dictionary containing user-defined information.
        :param Optional[Sequence[ResourceRepr]] data: the primary resources.
        """
        if data is None and errors is None and meta is None:
            raise ValueError("either data, errors, or meta must be specified")
        super().__init__(meta=meta)
        self.errors = errors or ()
        self.included = included
        self.data = data or ()
