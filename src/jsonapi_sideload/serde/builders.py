import abc
import typing
from collections import OrderedDict

from .models import (
    AttributeValue,
    CollectionDocumentRepr,
    ErrorRepr,
    LinkageRepr,
    Repr,
    ResourceIdRepr,
    ResourceRepr,
)


class ReprBuilder(metaclass=abc.ABCMeta):
    parent: typing.Optional["ReprBuilder"] = None
    meta: typing.Dict[str, typing.Any]

    @abc.abstractmethod
    def __call__(self) -> Repr:
        ...  # pragma: nocover

    def __init__(self, parent: typing.Optional["ReprBuilder"] = None):
        self.parent = parent
        self.meta = {}


class LinkageReprBuilder(ReprBuilder, metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def __call__(self) -> LinkageRepr:
        ...  # pragma: nocover


class ToManyRelReprBuilder(LinkageReprBuilder):
    data: "OrderedDict[typing.Tuple[str, str], ResourceIdRepr]"

    def add(self, type: str, id: str) -> None:
        """
        Adds a resource identifier to the linkage. Adding the same identifier twice is a no-op,
        so a relationship reached through several include paths is rendered once.
        """
        self.data.setdefault((type, id), ResourceIdRepr(type=type, id=id))

    def __call__(self) -> LinkageRepr:
        return LinkageRepr(
            data=tuple(self.data.values()),
            meta=self.meta,
        )

    def __init__(self, parent: typing.Optional[ReprBuilder] = None):
        super().__init__(parent)
        self.data = OrderedDict()


class ToOneRelReprBuilder(LinkageReprBuilder):
    data: typing.Optional[ResourceIdRepr]

    def set(self, type: str, id: str) -> None:
        self.data = ResourceIdRepr(type=type, id=id)

    def __call__(self) -> LinkageRepr:
        return LinkageRepr(
            data=self.data,
            meta=self.meta,
        )

    def __init__(self, parent: typing.Optional[ReprBuilder] = None):
        super().__init__(parent)
        self.data = None


class ResourceReprBuilder(ReprBuilder):
    type: typing.Optional[str] = None
    id: typing.Optional[str] = None
    attributes: "OrderedDict[str, typing.Any]"
    relationships: "OrderedDict[str, LinkageReprBuilder]"

    def set_type(self, type: str):
        self.type = type

    def set_id(self, id: str):
        self.id = id

    def add_attribute(self, name: str, value: AttributeValue):
        self.attributes[name] = value

    def next_to_many_relationship(self, name: str) -> ToManyRelReprBuilder:
        rel = self.relationships.get(name)
        if rel is not None:
            if not isinstance(rel, ToManyRelReprBuilder):
                raise TypeError("specified relationship is not a to-many relationship")
        else:
            self.relationships[name] = rel = ToManyRelReprBuilder(self)
        return typing.cast(ToManyRelReprBuilder, rel)

    def next_to_one_relationship(self, name: str) -> ToOneRelReprBuilder:
        rel = self.relationships.get(name)
        if rel is not None:
            if not isinstance(rel, ToOneRelReprBuilder):
                raise TypeError("specified relationship is not a to-one relationship")
        else:
            self.relationships[name] = rel = ToOneRelReprBuilder(self)
        return typing.cast(ToOneRelReprBuilder, rel)

    def __call__(self) -> ResourceRepr:
        assert self.type is not None
        assert self.id is not None
        return ResourceRepr(
            type=self.type,
            id=self.id,
            meta=self.meta,
            attributes=tuple((k, v) for k, v in self.attributes.items()),
            relationships=tuple((k, v()) for k, v in self.relationships.items()),
        )

    def __init__(self, parent: typing.Optional[ReprBuilder] = None):
        super().__init__(parent)
        self.attributes = OrderedDict()
        self.relationships = OrderedDict()


class CollectionDocumentBuilder(ReprBuilder):
    """
    Builds a :py:class:`CollectionDocumentRepr`. Resources are keyed by ``(type, id)``
    both in ``data`` and in ``included``, so asking twice for the same resource yields
    the same builder.
    """

    errors: typing.List[ErrorRepr]
    data: "OrderedDict[typing.Tuple[str, str], ResourceReprBuilder]"
    included: "OrderedDict[typing.Tuple[str, str], ResourceReprBuilder]"

    def _next(
        self,
        target: "OrderedDict[typing.Tuple[str, str], ResourceReprBuilder]",
        type: str,
        id: str,
    ) -> typing.Tuple[ResourceReprBuilder, bool]:
        key = (type, id)
        builder = target.get(key)
        if builder is not None:
            return builder, False
        builder = target[key] = ResourceReprBuilder(self)
        builder.set_type(type)
        builder.set_id(id)
        return builder, True

    def next(self, type: str, id: str) -> typing.Tuple[ResourceReprBuilder, bool]:
        """
        Returns the builder for a primary resource, along with a flag that tells if it was newly created.
        """
        return self._next(self.data, type, id)

    def next_included(self, type: str, id: str) -> typing.Tuple[ResourceReprBuilder, bool]:
        """
        Returns the builder for an included resource, along with a flag that tells if it was newly created.
        A resource that is already a part of the primary data is never included.
        """
        primary = self.data.get((type, id))
        if primary is not None:
            return primary, False
        return self._next(self.included, type, id)

    def __call__(self) -> CollectionDocumentRepr:
        return CollectionDocumentRepr(
            data=tuple(b() for b in self.data.values()),
            errors=tuple(self.errors),
            meta=self.meta,
            included=tuple(b() for b in self.included.values()),
        )

    def __init__(self):
        super().__init__(None)
        self.errors = []
        self.data = OrderedDict()
        self.included = OrderedDict()
