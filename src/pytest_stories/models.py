"""Base Pydantic models for DSL elements and run records.

This module defines the foundational model classes used by all story
structures. Declaration-time elements are immutable and strictly validated,
so that a declared story graph can be replayed any number of times with
the same result. Records produced while running (transcripts, summaries)
are mutable and serialized with camel-case keys.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for declared story elements.

    Steps, forks, stories and topics are frozen once declared and reject
    unknown fields, so a misspelled keyword fails at declaration time and
    paths enumerated from a story stay the same across runs.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class RecordModel(BaseModel):
    """Base mutable model for records collected during a run.

    Records are filled incrementally while paths are executed, so they
    are not frozen. Field names are exposed in camel case when dumped
    by alias, matching the persisted transcript format.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        arbitrary_types_allowed=True,
        populate_by_name=True,
        extra='forbid',
    )

    def dump(self) -> dict:
        """Dump the record into JSON-compatible primitives."""
        return self.model_dump(mode='json', by_alias=True)


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Settings come from the environment and from command-line or pytest
    overrides. Unrelated environment variables are ignored and resolved
    values are frozen.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
