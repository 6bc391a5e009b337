"""
:py:mod:`jsonapi_sideload.serializer` turns an executed plan into a compound document.

Synopsis
--------

.. code-block:: python

   serializer = DocumentSerializer(adapter)
   doc = serializer.render(
       root,
       fields_by_type={"books": ("pages",)},
       extra_fields_by_type={"authors": ("nickname",)},
   )

"""
import logging
import typing

from .exceptions import SideloadError
from .interfaces import StorageAdapter
from .models import RelationshipDescriptor, RelationshipKind
from .planner import PlanNode, identity_of
from .serde.builders import CollectionDocumentBuilder, ResourceReprBuilder
from .serde.models import CollectionDocumentRepr, ErrorRepr, SourceRepr
from .serde.renderer import ReprRenderer
from .serde.types import MutableJSONObject

logger = logging.getLogger(__name__)

AttributeSelection = typing.Mapping[str, typing.Sequence[str]]

TO_MANY_KINDS = frozenset([RelationshipKind.TO_MANY, RelationshipKind.MANY_TO_MANY])


class DocumentSerializer:
    adapter: StorageAdapter
    renderer: ReprRenderer

    def _select_attributes(
        self,
        node: PlanNode,
        fields_by_type: AttributeSelection,
        extra_fields_by_type: AttributeSelection,
    ) -> typing.List[str]:
        resource = node.resource
        fields = fields_by_type.get(resource.name)
        names = list(fields if fields is not None else resource.attributes)
        for name in extra_fields_by_type.get(resource.name, ()):
            if name not in names:
                names.append(name)
        return names

    def _expanded_relationships(self, node: PlanNode) -> typing.List[RelationshipDescriptor]:
        rels: typing.List[RelationshipDescriptor] = []
        for rel in [c.relationship for c in node.children] + [rel for rel, _ in node.deferred]:
            assert rel is not None
            if rel not in rels:
                rels.append(rel)
        return rels

    def _build_resource(
        self, builder: ResourceReprBuilder, record: typing.Any, attributes: typing.Sequence[str]
    ) -> None:
        for name in attributes:
            builder.add_attribute(name, self.adapter.attribute(record, name))

    def _build_linkages(
        self, builder: ResourceReprBuilder, node: PlanNode, record: typing.Any
    ) -> None:
        identity = identity_of(self.adapter, node.resource, record)
        for rel in self._expanded_relationships(node):
            children = [c for c in node.children if c.relationship is rel]
            if rel.kind in TO_MANY_KINDS:
                to_many = builder.next_to_many_relationship(rel.name)
                for child in children:
                    for related in child.links.get(identity, ()):
                        to_many.add(
                            child.resource.name,
                            str(identity_of(self.adapter, child.resource, related)),
                        )
            else:
                to_one = builder.next_to_one_relationship(rel.name)
                for child in children:
                    related_records = child.links.get(identity)
                    if related_records:
                        to_one.set(
                            child.resource.name,
                            str(identity_of(self.adapter, child.resource, related_records[0])),
                        )
                        break

    def build(
        self,
        root: PlanNode,
        fields_by_type: typing.Optional[AttributeSelection] = None,
        extra_fields_by_type: typing.Optional[AttributeSelection] = None,
    ) -> CollectionDocumentRepr:
        """
        Builds the :py:class:`CollectionDocumentRepr` of an executed plan.

        :param PlanNode root: The executed root node.
        :param Optional[AttributeSelection] fields_by_type: Attribute whitelists keyed by type name.
        :param Optional[AttributeSelection] extra_fields_by_type: Additional attributes keyed by type name.
        :return: The document representation.
        """
        fields_by_type = fields_by_type or {}
        extra_fields_by_type = extra_fields_by_type or {}
        doc_builder = CollectionDocumentBuilder()
        for node in root.walk():
            assert node.records is not None, f"{node!r} has not been executed"
            attributes = self._select_attributes(node, fields_by_type, extra_fields_by_type)
            for record in node.records:
                type_ = node.resource.name
                id_ = str(identity_of(self.adapter, node.resource, record))
                if node is root:
                    builder, created = doc_builder.next(type_, id_)
                else:
                    builder, created = doc_builder.next_included(type_, id_)
                if created:
                    self._build_resource(builder, record, attributes)
                self._build_linkages(builder, node, record)
        logger.debug(
            "built a document of %d primary and %d included resources",
            len(doc_builder.data),
            len(doc_builder.included),
        )
        return doc_builder()

    def render(
        self,
        root: PlanNode,
        fields_by_type: typing.Optional[AttributeSelection] = None,
        extra_fields_by_type: typing.Optional[AttributeSelection] = None,
    ) -> MutableJSONObject:
        return self.renderer(self.build(root, fields_by_type, extra_fields_by_type))

    def render_errors(self, *excs: SideloadError) -> MutableJSONObject:
        """
        Renders library errors as a JSON:API error document.
        """
        errors = []
        for exc in excs:
            parameter = getattr(exc, "parameter", None)
            errors.append(
                ErrorRepr(
                    status=exc.status,
                    code=exc.code,
                    title=exc.title,
                    detail=exc.message,
                    source=SourceRepr(parameter=parameter) if parameter is not None else None,
                )
            )
        return self.renderer(CollectionDocumentRepr(errors=errors))

    def __init__(self, adapter: StorageAdapter, renderer: typing.Optional[ReprRenderer] = None):
        self.adapter = adapter
        self.renderer = renderer if renderer is not None else ReprRenderer()
