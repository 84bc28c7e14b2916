"""
Indexed types: a RootField tied to an elastic index.

Types are registered under their key "index#type" so update notifications can refer
to them by name:

    cities = define_type("geo", "city", Field("name", type="keyword"), id="slug")
    notify(cities.key, [amsterdam, utrecht])
"""

import logging
from typing import Any, Iterable

from elasticsearch import NotFoundError

from indexsync.config import index_name
from indexsync.connections import es, wait_for_status
from indexsync.errors import IndexSyncError, UnderivableType
from indexsync.extractors import Extractor, extractor, read_value
from indexsync.fields import Field, RootField


class DocumentType:
    def __init__(self, index: str, root: RootField, delete_if: Any = None):
        self.index = index
        self.root = root
        self.delete_if: Extractor | None = extractor(delete_if) if delete_if is not None else None

    def __repr__(self):
        return f"<DocumentType {self.key}>"

    @property
    def name(self) -> str:
        return self.root.name

    @property
    def key(self) -> str:
        return f"{self.index}#{self.name}"

    @property
    def index_name(self) -> str:
        return index_name(self.index)

    def mappings_hash(self) -> dict[str, dict[str, Any]]:
        return self.root.mappings_hash()

    def compose(self, obj: Any) -> dict[str, Any]:
        return self.root.compose_document(obj)

    def should_delete(self, obj: Any) -> bool:
        return bool(self.delete_if is not None and self.delete_if(obj))

    def bulk_action(self, obj: Any) -> dict[str, Any]:
        """
        The elastic bulk action for this object: a delete action if delete_if says so, an index action otherwise.
        Documents with a parent are routed by the parent id unless an explicit routing value is configured.
        """
        id = self.root.compose_id(obj)
        routing = self.root.compose_routing(obj)
        if routing is None:
            routing = self.root.compose_parent(obj)

        if self.should_delete(obj):
            if id is None:
                try:
                    id = read_value(obj, "id")
                except AttributeError:
                    id = None
            if id is None:
                raise IndexSyncError(f"Cannot delete {self.key} document for {obj!r}: it has no id")
            action: dict[str, Any] = {"_op_type": "delete", "_index": self.index_name, "_id": id}
        else:
            action = {"_op_type": "index", "_index": self.index_name, "_source": self.compose(obj)}
            if id is not None:
                action["_id"] = id
        if routing is not None:
            action["routing"] = routing
        return action

    def bulk_actions(self, objects: Iterable[Any]) -> Iterable[dict[str, Any]]:
        for obj in objects:
            yield self.bulk_action(obj)

    def create_index(self) -> None:
        """
        Create the elastic index for this type, using the mapping of the field tree.
        Note that elastic 6 and later reject the _parent mapping: types with a parent can only
        be created on older clusters (use a join field on newer ones).
        """
        logging.info(f"Creating index {self.index_name} for type {self.key}")
        es().indices.create(index=self.index_name, mappings=self.mappings_hash()[self.name])
        wait_for_status()

    def delete_index(self, ignore_missing: bool = False) -> None:
        try:
            es().indices.delete(index=self.index_name)
        except NotFoundError:
            if not ignore_missing:
                raise
        wait_for_status()


_TYPES: dict[str, DocumentType] = {}


def register_type(doc_type: DocumentType) -> DocumentType:
    if doc_type.key in _TYPES and _TYPES[doc_type.key] is not doc_type:
        logging.warning(f"Replacing registered type {doc_type.key}")
    _TYPES[doc_type.key] = doc_type
    return doc_type


def unregister_type(key: str) -> None:
    _TYPES.pop(key, None)


def define_type(index: str, name: str, *fields: Field, delete_if: Any = None, **root_options: Any) -> DocumentType:
    """
    Define and register a type. Root options (id, parent, parent_id, routing, ...) are passed to the RootField.
    Use the dynamic_template method of the returned type's root to add dynamic templates.
    """
    return register_type(DocumentType(index, RootField(name, *fields, **root_options), delete_if=delete_if))


def get_type(key: str | DocumentType) -> DocumentType:
    if isinstance(key, DocumentType):
        return key
    try:
        return _TYPES[key]
    except KeyError:
        raise UnderivableType(f"No type registered as {key!r}, use the 'index#type' form") from None


def list_types() -> list[DocumentType]:
    return list(_TYPES.values())
