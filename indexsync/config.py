"""
indexsync Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the INDEXSYNC_ENV_FILE environment variable
"""

import functools
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal
from class_doc import extract_docs_from_cls_obj
from dotenv import load_dotenv
from pydantic import model_validator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "indexsync_"


class StrategyName(str, Enum):
    #: discard all update notifications, nothing is sent to elastic
    bypass = "bypass"

    #: send an update request for every notification, as soon as it arrives
    urgent = "urgent"

    #: collect notifications and send one bulk request per type when the scope is left
    atomic = "atomic"


for field, doc in extract_docs_from_cls_obj(StrategyName).items():
    StrategyName[field].__doc__ = "\n".join(doc)


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")

    elastic_password: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch password. This the password for the 'elastic' user when Elastic xpack security is enabled"
            )
        ),
    ] = None

    elastic_host: Annotated[
        str | None,
        Field(
            description=(
                "Elasticsearch host. "
                "Default: https://localhost:9200 if elastic_password is set, http://localhost:9200 otherwise"
            )
        ),
    ] = None

    elastic_verify_ssl: Annotated[
        bool | None,
        Field(
            description=(
                "Elasticsearch verify SSL (only used if elastic_password is set). Default: True unless host is localhost)"
            ),
        ),
    ] = None

    index_prefix: Annotated[
        str,
        Field(description="Prefix prepended (with an underscore) to every index name, empty for none"),
    ] = ""

    default_strategy: Annotated[
        StrategyName,
        Field(description="Strategy of the base frame of every new strategy stack"),
    ] = StrategyName.urgent

    bulk_batchsize: Annotated[
        int,
        Field(description="Maximum number of actions sent in one bulk request", gt=0),
    ] = 1000

    refresh: Annotated[
        bool,
        Field(description="Refresh the index after every update request (useful for tests, slow otherwise)"),
    ] = False

    wait_for_status: Annotated[
        Literal["green", "yellow", "red"] | None,
        Field(description="Cluster health status to wait for after creating or deleting indices, none to not wait"),
    ] = None

    @model_validator(mode="after")
    def set_ssl(self: Any) -> "Settings":
        if not self.elastic_host:
            self.elastic_host = ("https" if self.elastic_password else "http") + "://localhost:9200"
        if self.elastic_verify_ssl is None:
            self.elastic_verify_ssl = self.elastic_host not in {
                "http://localhost:9200",
                "https://localhost:9200",
            }
        return self

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def index_name(name: str) -> str:
    """Full elastic index name, including the configured prefix"""
    prefix = get_settings().index_prefix
    return f"{prefix}_{name}" if prefix else name


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
