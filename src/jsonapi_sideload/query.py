import collections.abc
import dataclasses
import logging
import typing

from .exceptions import (
    FilterNotAllowedError,
    InvalidParameterError,
    UnknownResourceTypeError,
    UnsupportedPageSizeError,
)
from .models import Direction, ResourceDefinition, SortKey
from .registry import Registry, RegistryConfig
from .serde.utils import split_comma_list

logger = logging.getLogger(__name__)

RawBundle = typing.Mapping[str, typing.Any]

BUNDLE_KEYS = frozenset(["filter", "sort", "page", "fields", "extra_fields"])


@dataclasses.dataclass(frozen=True)
class Page:
    number: int
    size: int


@dataclasses.dataclass(frozen=True)
class QuerySpec:
    """
    The resolved query parameters for a single resource type.

    Filters are ANDed across fields and ORed within a field's value set.
    ``fields`` replaces the default attribute set when not ``None``, and
    ``extra_fields`` is always added on top of whichever set is active.
    ``page`` stays ``None`` unless the request asked for a page, in which case
    the fetch of the type is paginated.
    """

    page: typing.Optional[Page] = None
    filters: typing.Mapping[str, typing.FrozenSet[typing.Any]] = dataclasses.field(
        default_factory=dict
    )
    sort: typing.Tuple[SortKey, ...] = ()
    fields: typing.Optional[typing.Tuple[str, ...]] = None
    extra_fields: typing.Tuple[str, ...] = ()


class QuerySpecs(typing.Mapping[str, QuerySpec]):
    """
    One :py:class:`QuerySpec` per resource type.  Types that a request never
    mentions resolve to the default spec, so a lookup never fails.
    """

    default: QuerySpec
    _specs: typing.Mapping[str, QuerySpec]

    def __getitem__(self, name: str) -> QuerySpec:
        return self._specs.get(name, self.default)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def fields_by_type(self) -> typing.Dict[str, typing.Tuple[str, ...]]:
        return {k: v.fields for k, v in self._specs.items() if v.fields is not None}

    def extra_fields_by_type(self) -> typing.Dict[str, typing.Tuple[str, ...]]:
        return {k: v.extra_fields for k, v in self._specs.items() if v.extra_fields}

    def __init__(
        self, default: QuerySpec, specs: typing.Optional[typing.Mapping[str, QuerySpec]] = None
    ):
        self.default = default
        self._specs = dict(specs) if specs is not None else {}


def default_page(config: RegistryConfig) -> Page:
    return Page(number=config.default_page_number, size=config.default_page_size)


def _parameter(kind: str, type_name: typing.Optional[str], *path: str) -> str:
    components = [kind]
    if type_name is not None:
        components.append(f"[{type_name}]")
    components.extend(f"[{p}]" for p in path)
    return "".join(components)


def _parse_filter_values(value: typing.Any) -> typing.FrozenSet[typing.Any]:
    if isinstance(value, str):
        return frozenset(split_comma_list(value))
    elif isinstance(value, collections.abc.Iterable):
        values: typing.Set[typing.Any] = set()
        for v in value:
            values |= _parse_filter_values(v)
        return frozenset(values)
    else:
        return frozenset([value])


class QueryParameterResolver:
    """
    Turns raw per-type parameter bundles into :py:class:`QuerySpec`s.  Everything
    is validated here, before the first fetch, and the first violation aborts the
    whole request.
    """

    registry: Registry

    def default_spec(self) -> QuerySpec:
        return QuerySpec()

    def _resolve_filters(
        self, resource: ResourceDefinition, raw: typing.Any, keyed: typing.Optional[str]
    ) -> typing.Dict[str, typing.FrozenSet[typing.Any]]:
        if not isinstance(raw, collections.abc.Mapping):
            raise InvalidParameterError(
                resource.name, "filter must be a mapping", _parameter("filter", keyed)
            )
        filters: typing.Dict[str, typing.FrozenSet[typing.Any]] = {}
        for field, value in raw.items():
            if field not in resource.allowed_filters:
                raise FilterNotAllowedError(
                    resource.name,
                    field,
                    resource.allowed_filters,
                    _parameter("filter", keyed, field),
                )
            values = _parse_filter_values(value)
            if not values:
                raise InvalidParameterError(
                    resource.name,
                    f'filter "{field}" has no value',
                    _parameter("filter", keyed, field),
                )
            filters[field] = values
        return filters

    def _resolve_sort(
        self, resource: ResourceDefinition, raw: typing.Any, keyed: typing.Optional[str]
    ) -> typing.Tuple[SortKey, ...]:
        keys: typing.List[SortKey] = []
        for item in split_comma_list(raw):
            if item.startswith("-"):
                key = SortKey(item[1:], Direction.DESC)
            else:
                key = SortKey(item.lstrip("+"), Direction.ASC)
            if not resource.sortable(key.field):
                raise InvalidParameterError(
                    resource.name,
                    f'cannot sort by unknown attribute "{key.field}"',
                    _parameter("sort", keyed),
                )
            keys.append(key)
        return tuple(keys)

    def _resolve_page_value(
        self,
        resource: ResourceDefinition,
        raw: typing.Mapping[str, typing.Any],
        name: str,
        default: int,
        keyed: typing.Optional[str],
    ) -> int:
        value = raw.get(name)
        if value is None:
            return default
        try:
            if isinstance(value, bool):
                raise ValueError(value)
            result = int(value)
        except (TypeError, ValueError):
            raise InvalidParameterError(
                resource.name,
                f"page {name} must be an integer ({value!r} given)",
                _parameter("page", keyed, name),
            )
        if result < 1:
            raise InvalidParameterError(
                resource.name,
                f"page {name} must be at least 1 ({result} given)",
                _parameter("page", keyed, name),
            )
        return result

    def _resolve_page(
        self, resource: ResourceDefinition, raw: typing.Any, keyed: typing.Optional[str]
    ) -> Page:
        if not isinstance(raw, collections.abc.Mapping):
            raise InvalidParameterError(
                resource.name, "page must be a mapping", _parameter("page", keyed)
            )
        default = default_page(self.registry.config)
        number = self._resolve_page_value(resource, raw, "number", default.number, keyed)
        size = self._resolve_page_value(resource, raw, "size", default.size, keyed)
        max_size = self.registry.config.max_page_size
        if size > max_size:
            raise UnsupportedPageSizeError(
                resource.name, size, max_size, _parameter("page", keyed, "size")
            )
        return Page(number=number, size=size)

    def _resolve_attribute_list(
        self,
        resource: ResourceDefinition,
        raw: typing.Any,
        kind: str,
        keyed: typing.Optional[str],
    ) -> typing.Tuple[str, ...]:
        names: typing.List[str] = []
        for name in split_comma_list(raw):
            if not resource.knows(name):
                raise InvalidParameterError(
                    resource.name,
                    f'unknown attribute "{name}" in {kind}',
                    _parameter(kind, keyed),
                )
            if name not in names:
                names.append(name)
        return tuple(names)

    def resolve_bundle(
        self, resource: ResourceDefinition, bundle: RawBundle, keyed: bool = True
    ) -> QuerySpec:
        unknown = set(bundle) - BUNDLE_KEYS
        if unknown:
            raise InvalidParameterError(
                resource.name, f"unknown parameter {sorted(unknown)[0]!r}"
            )
        type_name = resource.name if keyed else None
        spec = self.default_spec()
        if bundle.get("filter") is not None:
            spec = dataclasses.replace(
                spec, filters=self._resolve_filters(resource, bundle["filter"], type_name)
            )
        if bundle.get("sort") is not None:
            spec = dataclasses.replace(
                spec, sort=self._resolve_sort(resource, bundle["sort"], type_name)
            )
        if bundle.get("page") is not None:
            spec = dataclasses.replace(
                spec, page=self._resolve_page(resource, bundle["page"], type_name)
            )
        if bundle.get("fields") is not None:
            spec = dataclasses.replace(
                spec,
                fields=self._resolve_attribute_list(
                    resource, bundle["fields"], "fields", type_name
                ),
            )
        if bundle.get("extra_fields") is not None:
            spec = dataclasses.replace(
                spec,
                extra_fields=self._resolve_attribute_list(
                    resource, bundle["extra_fields"], "extra_fields", type_name
                ),
            )
        return spec

    def resolve(
        self,
        base_type: str,
        bundles: typing.Mapping[typing.Optional[str], RawBundle],
    ) -> QuerySpecs:
        """
        Resolves every bundle into a :py:class:`QuerySpec`.

        :param str base_type: The name of the base resource type.
        :param bundles: A mapping of type names to raw bundles.  The ``None`` key
                        denotes an unkeyed bundle for the base type, which gets
                        merged with the keyed one (the keyed one wins per parameter).
        :return: A :py:class:`QuerySpecs`.
        """
        base = self.registry.get_resource(base_type)
        specs: typing.Dict[str, QuerySpec] = {}
        for type_name, bundle in bundles.items():
            if type_name is None:
                continue
            if type_name not in self.registry:
                raise UnknownResourceTypeError(type_name)
            specs[type_name] = self.resolve_bundle(self.registry.get_resource(type_name), bundle)
        unkeyed = bundles.get(None)
        if unkeyed is not None:
            merged = dict(unkeyed)
            merged.update(bundles.get(base_type, {}))
            specs[base_type] = self.resolve_bundle(base, merged, keyed=base_type in bundles)
        logger.debug("resolved query specs for %s", ", ".join(specs) or "(none)")
        return QuerySpecs(self.default_spec(), specs)

    def __init__(self, registry: Registry):
        self.registry = registry
