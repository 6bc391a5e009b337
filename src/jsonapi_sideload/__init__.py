from .exceptions import (  # noqa: F401
    ExecutionError,
    FilterNotAllowedError,
    InvalidDeclarationError,
    InvalidParameterError,
    QueryParameterError,
    SideloadError,
    UnknownRelationshipError,
    UnknownResourceTypeError,
    UnmappedPolymorphicGroupError,
    UnsupportedPageSizeError,
)
from .executor import QueryExecutor, QueryOverrides  # noqa: F401
from .interfaces import StorageAdapter  # noqa: F401
from .models import (  # noqa: F401
    Direction,
    KeyDirection,
    RelationshipKind,
    RelationshipTarget,
    ResourceDefinition,
    SortKey,
    keyed_scope,
)
from .params import parse_include, split_request_params  # noqa: F401
from .planner import PlanNode, SideloadPlanner  # noqa: F401
from .query import Page, QueryParameterResolver, QuerySpec, QuerySpecs  # noqa: F401
from .registry import Registry, RegistryBuilder, RegistryConfig, join_table  # noqa: F401
from .serializer import DocumentSerializer  # noqa: F401
from .sideloader import Sideloader, plan_and_execute  # noqa: F401
