"""Declarative story-based testing of HTTP APIs.

The `pytest_stories` package lets test authors describe API usage as
topics of stories, each a graph of steps with alternative continuations.
Every linear path through a story is replayed against a fresh driver,
and the exchanges are recorded into transcripts.

Key features:
- Python DSL with forks and deferred (not yet written) continuations;
- sequential replay with global and topic hooks around every path;
- JSON transcripts deduplicated by step prefix;
- command-line runner and pytest integration.
"""

from pytest_stories.core import StoryBook, TopicBuilder, branch, deferred, step

__all__ = (
    'StoryBook',
    'TopicBuilder',
    'branch',
    'deferred',
    'step',
)
