"""Core runtime of story declarations.

This package turns declarations into runs:
- DSL builders normalizing step specifications into immutable nodes;
- enumeration of the linear paths through a story;
- sequential replay of paths against fresh drivers;
- transcript recording and persistence;
- loading of story files and driver factories.
"""

from .builder import StoryBook, TopicBuilder, branch, build_nodes, deferred, step
from .engine import Filter, PathOutcome, RunOptions, RunSummary, TopicRunner, run_topics
from .loader import StoryLoader
from .paths import Path, enumerate_paths
from .recorder import ActionHandle, Scribe, TranscriptRecorder
from .writer import TranscriptWriter

__all__ = (
    'ActionHandle',
    'Filter',
    'Path',
    'PathOutcome',
    'RunOptions',
    'RunSummary',
    'Scribe',
    'StoryBook',
    'StoryLoader',
    'TopicBuilder',
    'TopicRunner',
    'TranscriptRecorder',
    'TranscriptWriter',
    'branch',
    'build_nodes',
    'deferred',
    'enumerate_paths',
    'run_topics',
    'step',
)
