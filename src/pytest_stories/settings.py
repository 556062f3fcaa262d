"""Runtime settings.

Settings are resolved from `STORIES_*` environment variables. Values
given on the command line or as pytest options are passed as keyword
arguments and take precedence over the environment.
"""

from pathlib import Path  # noqa: TC003
from typing import Any

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from pytest_stories.models import SettingsModel


class StorySettings(SettingsModel):
    """Settings shared by the command line, the pytest plugin and drivers."""

    model_config = SettingsConfigDict(env_prefix='STORIES_')

    endpoint: str | None = Field(
        default=None,
        title='API endpoint',
        description=(
            'Base URL of the API under test. If a path portion is included, '
            'for example `/api/v1/`, drivers append it to all requests.'
        ),
    )

    driver: str | None = Field(
        default=None,
        title='Driver reference',
        description=(
            'Driver factory as `module:attribute`. When unset, the factory is '
            'discovered from the `stories_drivers` entry point group.'
        ),
    )

    transcripts: Path | None = Field(
        default=None,
        title='Transcripts directory',
        description='Output directory for topic transcripts.',
    )

    commit: str | None = Field(
        default=None,
        title='API commit',
        description='Revision of the API under test, stored in the transcripts index.',
    )

    strict: bool = Field(
        default=False,
        title='Strict loading',
        description='Fail on ambiguous or missing drivers and setup files instead of warning.',
    )

    @classmethod
    def with_overrides(cls, **overrides: Any) -> 'StorySettings':  # noqa: ANN401
        """Resolve settings, overriding the environment with set values."""
        return cls(**{
            name: value
            for name, value in overrides.items()
            if value is not None
        })
