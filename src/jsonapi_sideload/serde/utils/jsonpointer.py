import typing


def _escape(component: str) -> str:
    return component.replace("~", "~0").replace("/", "~1")


class JSONPointer:
    """
    An immutable `JSON Pointer <https://tools.ietf.org/html/rfc6901>`_ used to
    tell where in a document a value is being rendered.
    """

    _components: typing.Tuple[str, ...]

    @property
    def components(self) -> typing.Tuple[str, ...]:
        return self._components

    def __truediv__(self, component: str) -> "JSONPointer":
        return JSONPointer(*self._components, component)

    def __getitem__(self, index: int) -> "JSONPointer":
        return JSONPointer(*self._components, str(index))

    def __eq__(self, other: typing.Any) -> bool:
        if not isinstance(other, JSONPointer):
            return NotImplemented
        return self._components == other._components

    def __hash__(self) -> int:
        return hash(self._components)

    def __str__(self) -> str:
        return "".join("/" + _escape(c) for c in self._components) or "/"

    def __repr__(self) -> str:
        return f"JSONPointer({str(self)!r})"

    def __init__(self, *components: str):
        self._components = components
