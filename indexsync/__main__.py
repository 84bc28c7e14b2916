"""
indexsync command line tools

Types are defined in python modules, so most actions need the module(s) that define them:

    python -m indexsync -m myapp.indices mapping geo#city
"""

import argparse
import importlib
import json
import logging
import sys
from enum import Enum
from typing import get_args

from pydantic.fields import FieldInfo

from indexsync.config import ENV_PREFIX, get_settings
from indexsync.connections import delete_all, es, wait_for_status
from indexsync.types import get_type, list_types


def load_modules(modules: list[str]) -> None:
    for module in modules:
        logging.debug(f"Importing type definitions from {module}")
        importlib.import_module(module)


def show_mapping(args):
    doc_type = get_type(args.type)
    print(json.dumps(doc_type.mappings_hash(), indent=2, default=str))


def show_types(_args):
    types = list_types()
    for doc_type in types:
        print(f"{doc_type.key}\t{doc_type.index_name}")
    if not types:
        print("(No types defined, use -m to import the modules that define them)")


def create_index(args):
    if not es().ping():
        raise ConnectionError(f"Cannot connect to elasticsearch server {get_settings().elastic_host}")
    doc_type = get_type(args.type)
    if args.recreate:
        doc_type.delete_index(ignore_missing=True)
    doc_type.create_index()
    logging.info(f"Created index {doc_type.index_name}")


def delete_index(args):
    doc_type = get_type(args.type)
    doc_type.delete_index(ignore_missing=args.ignore_missing)
    logging.info(f"Deleted index {doc_type.index_name}")


def dangerously_delete_all(args):
    prefix = get_settings().index_prefix
    if not prefix and not args.no_prefix:
        logging.error("No index prefix is configured, this would delete ALL indices. Use --no-prefix if you mean that")
        sys.exit(1)
    delete_all()


def wait_status(args):
    if args.status:
        get_settings().wait_for_status = args.status
    if not get_settings().wait_for_status:
        logging.error("No status given, use --status or set indexsync_wait_for_status")
        sys.exit(1)
    wait_for_status()
    logging.info(f"Cluster status is {get_settings().wait_for_status} or better")


def _isenum(fieldinfo: FieldInfo) -> bool:
    try:
        return issubclass(fieldinfo.annotation, Enum) if fieldinfo.annotation is not None else False
    except TypeError:
        return False


def show_config(_args):
    """Print the current settings in .env format"""
    settings = get_settings()
    for fieldname, fieldinfo in type(settings).model_fields.items():
        if fieldname == "env_file":
            continue
        value = getattr(settings, fieldname)
        if doc := fieldinfo.description:
            print(f"# {doc}")
        if _isenum(fieldinfo) and fieldinfo.annotation:
            print("# Valid options:")
            for option in get_args(fieldinfo.annotation) or list(fieldinfo.annotation):
                print(f"# - {option.name}: {(option.__doc__ or '').replace(chr(10), ' ')}")
        if isinstance(value, Enum):
            value = value.value
        if value is None:
            print(f"#{ENV_PREFIX}{fieldname}=\n")
        else:
            print(f"{ENV_PREFIX}{fieldname}={value}\n")


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m indexsync")
    parser.add_argument(
        "-m", "--module", action="append", default=[], dest="modules", help="Module defining types (can be repeated)"
    )

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("types", help="List the defined types")
    p.set_defaults(func=show_types)

    p = subparsers.add_parser("mapping", help="Print the elastic mapping of a type")
    p.add_argument("type", help="The type as index#type")
    p.set_defaults(func=show_mapping)

    p = subparsers.add_parser("create-index", help="Create the elastic index for a type")
    p.add_argument("type", help="The type as index#type")
    p.add_argument("--recreate", action="store_true", help="Delete the index first if it exists")
    p.set_defaults(func=create_index)

    p = subparsers.add_parser("delete-index", help="Delete the elastic index of a type")
    p.add_argument("type", help="The type as index#type")
    p.add_argument("--ignore-missing", action="store_true", help="Don't fail if the index doesn't exist")
    p.set_defaults(func=delete_index)

    p = subparsers.add_parser(
        "dangerously-delete-all",
        help="DANGER: Delete all indices with the configured prefix (or all indices, with --no-prefix)",
    )
    p.add_argument("--no-prefix", action="store_true", help="Allow deleting all indices if no prefix is configured")
    p.set_defaults(func=dangerously_delete_all)

    p = subparsers.add_parser("wait-for-status", help="Wait for the cluster health status")
    p.add_argument("-s", "--status", choices=["green", "yellow", "red"], help="Status to wait for (default: from settings)")
    p.set_defaults(func=wait_status)

    p = subparsers.add_parser("config", help="Print the current settings in .env format")
    p.set_defaults(func=show_config)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    es_logger = logging.getLogger("elasticsearch")
    es_logger.setLevel(logging.WARNING)

    load_modules(args.modules)
    args.func(args)


if __name__ == "__main__":
    main()
