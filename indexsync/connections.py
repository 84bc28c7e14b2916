"""
Sets up the connection to the Elastic server.
Use es() to get the (cached) connection; it is created and checked on first use.
"""
import functools
import logging

from elasticsearch import Elasticsearch

from indexsync.config import get_settings


class CannotConnectElastic(Exception):
    pass


@functools.lru_cache()
def es() -> Elasticsearch:
    return _setup_elastic()


def _connect_elastic() -> Elasticsearch:
    """
    Connect to the elastic server using the system settings
    """
    settings = get_settings()
    if settings.elastic_password:
        return Elasticsearch(
            settings.elastic_host,
            basic_auth=("elastic", settings.elastic_password),
            verify_certs=bool(settings.elastic_verify_ssl),
        )
    else:
        return Elasticsearch(settings.elastic_host or None)


def _setup_elastic() -> Elasticsearch:
    """
    Check whether we can connect with elastic
    """
    settings = get_settings()
    logging.debug(
        f"Connecting with elasticsearch at {settings.elastic_host}, "
        f"password? {'yes' if settings.elastic_password else 'no'} "
    )
    elastic = _connect_elastic()
    if not elastic.ping():
        raise CannotConnectElastic(f"Cannot connect to elasticsearch server {settings.elastic_host}")
    return elastic


def wait_for_status() -> None:
    """
    Wait until the cluster has the health status given in the settings.
    Does nothing if wait_for_status is not configured.
    """
    status = get_settings().wait_for_status
    if status:
        logging.debug(f"Waiting for cluster status {status}")
        es().cluster.health(wait_for_status=status)


def delete_all() -> None:
    """
    Delete all indices with the configured prefix.
    Be careful: if no prefix is configured, this deletes ALL indices on the server.
    """
    prefix = get_settings().index_prefix
    pattern = f"{prefix}_*" if prefix else "*"
    logging.warning(f"Deleting all indices matching {pattern}")
    es().indices.delete(index=pattern)
    wait_for_status()
