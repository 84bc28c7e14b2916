"""
Index clients send updated objects to the search engine.
Strategies only need the IndexClient protocol; ElasticIndexClient is the implementation
that composes documents for registered types and sends them to elastic.
"""

import json
import logging
from typing import Any, Protocol

import elasticsearch.helpers
from elasticsearch import Elasticsearch, NotFoundError

from indexsync.config import get_settings
from indexsync.connections import es
from indexsync.errors import IndexUpdateError
from indexsync.types import get_type


class IndexClient(Protocol):
    def single_update(self, type_name: str, obj: Any) -> None: ...

    def bulk_update(self, type_name: str, objects: list[Any]) -> None: ...


class ElasticIndexClient:
    """
    Sends updates to elastic. Failures are not retried: they are raised as IndexUpdateError
    (or the elasticsearch transport error) to the caller.
    """

    def __init__(self, elastic: Elasticsearch | None = None, batchsize: int | None = None, refresh: bool | None = None):
        self._elastic = elastic
        self.batchsize = batchsize
        self.refresh = refresh

    @property
    def elastic(self) -> Elasticsearch:
        return self._elastic if self._elastic is not None else es()

    def _batchsize(self) -> int:
        return self.batchsize if self.batchsize is not None else get_settings().bulk_batchsize

    def _refresh(self) -> bool:
        return self.refresh if self.refresh is not None else get_settings().refresh

    def single_update(self, type_name: str, obj: Any) -> None:
        action = get_type(type_name).bulk_action(obj)
        logging.debug(f"{action['_op_type']} {type_name} document {action.get('_id')}")
        kargs: dict[str, Any] = dict(index=action["_index"], refresh=self._refresh())
        if "routing" in action:
            kargs["routing"] = action["routing"]
        if action["_op_type"] == "delete":
            try:
                self.elastic.delete(id=action["_id"], **kargs)
            except NotFoundError:
                logging.debug(f"{type_name} document {action['_id']} was already deleted")
        else:
            self.elastic.index(id=action.get("_id"), document=action["_source"], **kargs)

    def bulk_update(self, type_name: str, objects: list[Any]) -> None:
        doc_type = get_type(type_name)
        logging.debug(f"Bulk update of {len(objects)} {type_name} document(s)")
        try:
            elasticsearch.helpers.bulk(
                self.elastic,
                doc_type.bulk_actions(objects),
                chunk_size=self._batchsize(),
                refresh=self._refresh(),
            )
        except elasticsearch.helpers.BulkIndexError as e:
            logging.error(f"Error on updating {type_name}: " + json.dumps(e.errors, indent=2, default=str))
            raise IndexUpdateError(type_name, e.errors) from e
