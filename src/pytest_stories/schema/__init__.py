"""Declarative models of the story DSL and of run records.

Defines immutable Pydantic models that describe topics, stories and the
step graph of a story, the driver contract consumed by the engine, and
the mutable records (expectation results, transcripts) produced by a run.
"""

from .drivers import Driver, DriverAction, DriverFactory, SettingsDriverFactory
from .nodes import DEFERRED, Deferred, Fork, Node, Step
from .results import ExpectationResults
from .stories import PathHooks, Story, Topic
from .transcripts import ActionLog, ActionRecord, ResponseRecord, StepRecord, StoryRecord, Transcript

__all__ = (
    'DEFERRED',
    'ActionLog',
    'ActionRecord',
    'Deferred',
    'Driver',
    'DriverAction',
    'DriverFactory',
    'ExpectationResults',
    'Fork',
    'Node',
    'PathHooks',
    'ResponseRecord',
    'SettingsDriverFactory',
    'Step',
    'StepRecord',
    'Story',
    'StoryRecord',
    'Topic',
    'Transcript',
)
