import logging
import typing
from collections import OrderedDict

from .interfaces import StorageAdapter
from .models import KeyDirection, KeyedRelationshipDescriptor, ManyToManyRelationshipDescriptor
from .planner import PlanNode, identity_of
from .utils import assert_not_none

logger = logging.getLogger(__name__)


class ResultAssembler:
    """
    Links the records of an executed child node back to the records of its parent.

    The outcome is kept in :py:attr:`PlanNode.links`: a mapping from the identity of
    each parent record to the list of child records related to it, in the order
    the child records were fetched.  Parents without any related record are
    absent from the mapping.
    """

    def _index(
        self, adapter: StorageAdapter, records: typing.Iterable[typing.Any], field: str
    ) -> "OrderedDict[typing.Any, typing.List[typing.Any]]":
        index: "OrderedDict[typing.Any, typing.List[typing.Any]]" = OrderedDict()
        for record in records:
            index.setdefault(adapter.attribute(record, field), []).append(record)
        return index

    def attach(self, child: PlanNode, adapter: StorageAdapter) -> None:
        parent = assert_not_none(child.parent)
        records = assert_not_none(child.records)
        parent_records = assert_not_none(child.parent_records)
        rel = child.relationship
        links: "OrderedDict[typing.Any, typing.List[typing.Any]]" = OrderedDict()

        if isinstance(rel, ManyToManyRelationshipDescriptor):
            assert child.join is not None and child.join.mapping is not None
            by_id = self._index(adapter, records, child.resource.id_attribute)
            for parent_record in parent_records:
                parent_id = identity_of(adapter, parent.resource, parent_record)
                related = [
                    r for key in child.join.mapping.get(parent_id, ()) for r in by_id.get(key, ())
                ]
                if related:
                    links[parent_id] = related
        elif isinstance(rel, KeyedRelationshipDescriptor) and rel.key_direction is KeyDirection.CHILD:
            assert child.key_field is not None
            by_fk = self._index(adapter, records, child.key_field)
            for parent_record in parent_records:
                parent_id = identity_of(adapter, parent.resource, parent_record)
                related = by_fk.get(parent_id)
                if related:
                    links[parent_id] = list(related)
        else:
            # the foreign key sits on the parent; polymorphic groups only see their own parents
            assert child.target is not None
            by_id = self._index(adapter, records, child.resource.id_attribute)
            for parent_record in parent_records:
                fk = adapter.attribute(parent_record, child.target.foreign_key)
                if fk is None:
                    continue
                related = by_id.get(fk)
                if related:
                    links[identity_of(adapter, parent.resource, parent_record)] = related[:1]

        child.links = links
        logger.debug("attached %d parents of %r", len(links), child)
