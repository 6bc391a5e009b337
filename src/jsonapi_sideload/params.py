"""
Helpers that turn JSON:API style request parameters into the inputs of
:py:class:`~jsonapi_sideload.query.QueryParameterResolver` and
:py:class:`~jsonapi_sideload.planner.SideloadPlanner`.

The parameters are expected to be decoded into nested dictionaries already,
so that ``filter[books][id]=1&sort=-books.title&include=books`` arrives as

.. code-block:: python

   {
       "filter": {"books": {"id": "1"}},
       "sort": "-books.title",
       "include": "books",
   }

"""
import collections.abc
import logging
import typing
from collections import OrderedDict

from .exceptions import InvalidParameterError, UnknownResourceTypeError
from .models import ResourceDefinition
from .query import RawBundle
from .registry import Registry
from .serde.utils import split_comma_list

logger = logging.getLogger(__name__)

IncludeTree = typing.Dict[str, typing.Any]
Bundles = typing.Dict[typing.Optional[str], typing.Dict[str, typing.Any]]


def _merge_include(dest: IncludeTree, src: typing.Mapping[str, typing.Any]) -> IncludeTree:
    for name, subtree in src.items():
        _merge_include(dest.setdefault(name, OrderedDict()), subtree)
    return dest


def parse_include(value: typing.Any) -> IncludeTree:
    """
    Builds an include tree out of an ``include`` parameter.

    ``"books.state,bio"`` becomes ``{"books": {"state": {}}, "bio": {}}``.  Mappings
    are normalized recursively (``None`` and ``True`` denote a leaf) and sequences
    are parsed item by item and merged.
    """
    tree: IncludeTree = OrderedDict()
    if value is None:
        return tree
    if isinstance(value, str):
        for path in split_comma_list(value):
            node = tree
            for name in path.split("."):
                name = name.strip()
                if not name:
                    raise InvalidParameterError("(include)", f"malformed include path {path!r}", "include")
                node = node.setdefault(name, OrderedDict())
    elif isinstance(value, collections.abc.Mapping):
        for name, subtree in value.items():
            _merge_include(
                tree,
                {name: parse_include(subtree) if subtree not in (None, True) else OrderedDict()},
            )
    elif isinstance(value, collections.abc.Iterable):
        for item in value:
            _merge_include(tree, parse_include(item))
    else:
        raise InvalidParameterError("(include)", f"unsupported include value {value!r}", "include")
    return tree


class _TypeResolver:
    registry: Registry
    base: ResourceDefinition

    def __call__(self, key: str) -> str:
        if key in self.registry:
            return key
        rel = self.base.relationships.get(key)
        if rel is not None and len(rel.targets) == 1:
            return rel.targets[0].resource.name
        raise UnknownResourceTypeError(key)

    def __init__(self, registry: Registry, base: ResourceDefinition):
        self.registry = registry
        self.base = base


def _bundle(bundles: Bundles, key: typing.Optional[str]) -> typing.Dict[str, typing.Any]:
    return bundles.setdefault(key, {})


def _split_nested(
    bundles: Bundles, kind: str, value: typing.Any, resolve_type: _TypeResolver
) -> None:
    # a mapping under a type name targets that type, anything else targets the base
    if not isinstance(value, collections.abc.Mapping):
        raise InvalidParameterError("(request)", f"{kind} must be a mapping", kind)
    for key, item in value.items():
        if isinstance(item, collections.abc.Mapping):
            _bundle(bundles, resolve_type(key)).setdefault(kind, {}).update(item)
        else:
            _bundle(bundles, None).setdefault(kind, {})[key] = item


def _split_sort(bundles: Bundles, value: typing.Any, resolve_type: _TypeResolver) -> None:
    for item in split_comma_list(value):
        sign = ""
        if item[:1] in ("-", "+"):
            sign, item = item[:1], item[1:]
        type_name: typing.Optional[str] = None
        if "." in item:
            prefix, _, item = item.rpartition(".")
            type_name = resolve_type(prefix)
        _bundle(bundles, type_name).setdefault("sort", []).append(sign + item)


def _split_attribute_lists(
    bundles: Bundles, kind: str, value: typing.Any, resolve_type: _TypeResolver
) -> None:
    if isinstance(value, collections.abc.Mapping):
        for key, item in value.items():
            _bundle(bundles, resolve_type(key)).setdefault(kind, []).extend(split_comma_list(item))
    else:
        _bundle(bundles, None).setdefault(kind, []).extend(split_comma_list(value))


def split_request_params(
    registry: Registry, base_type: str, params: typing.Mapping[str, typing.Any]
) -> typing.Tuple[typing.Dict[typing.Optional[str], RawBundle], IncludeTree]:
    """
    Splits decoded JSON:API request parameters into per-type bundles and an include tree.

    Parameters that carry no type (``filter[first_name]``, ``sort=-id``) go to the bundle
    keyed by ``None``, which stands for the base type.  A type is designated either by
    its registered name or by the name of a relationship of the base type.

    :param Registry registry: The registry.
    :param str base_type: The name of the base resource type.
    :param Mapping[str, Any] params: The decoded request parameters.
    :return: A tuple of the bundles and the include tree.
    """
    resolve_type = _TypeResolver(registry, registry.get_resource(base_type))
    bundles: Bundles = OrderedDict()
    include: IncludeTree = OrderedDict()
    for kind, value in params.items():
        if value is None:
            continue
        if kind in ("filter", "page"):
            _split_nested(bundles, kind, value, resolve_type)
        elif kind == "sort":
            _split_sort(bundles, value, resolve_type)
        elif kind in ("fields", "extra_fields"):
            _split_attribute_lists(bundles, kind, value, resolve_type)
        elif kind == "include":
            include = parse_include(value)
        else:
            logger.debug("ignoring unrecognized parameter %s", kind)
    return typing.cast(typing.Dict[typing.Optional[str], RawBundle], bundles), include
