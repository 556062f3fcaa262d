"""Transcript records.

A transcript is the hierarchical trace of one topic run: stories, the
steps exercised by their paths, and the HTTP exchanges and annotations
attributed to each step. Records are filled while paths execute and are
dumped with camel-case keys (`isFork`, `docStrings`, `statusCode`).
"""

from typing import Any

from pydantic import Field, NonNegativeInt

from pytest_stories.models import RecordModel


class ResponseRecord(RecordModel):
    """Snapshot of a response."""

    status_code: int | None = None
    body: Any = None


class ActionRecord(RecordModel):
    """One recorded HTTP exchange.

    The record is reserved empty when a step registers the exchange and
    is filled once the underlying call completes.
    """

    actor: str | None = None
    request: Any = None
    response: ResponseRecord | None = None


class ActionLog(RecordModel):
    """Ordered exchanges with free-text notes keyed by action index."""

    actions: list[ActionRecord] = Field(default_factory=list)
    doc_strings: dict[int, list[str]] = Field(default_factory=dict)


class StepRecord(ActionLog):
    """Step exercised by at least one path of a story."""

    description: str
    depth: NonNegativeInt = 0
    is_fork: bool = False


class StoryRecord(RecordModel):
    """Story with its exercised steps in first-visit order."""

    description: str
    steps: list[StepRecord] = Field(default_factory=list)


class Transcript(RecordModel):
    """Per-topic transcript document."""

    description: str
    setup: ActionLog | None = None
    stories: list[StoryRecord] = Field(default_factory=list)
