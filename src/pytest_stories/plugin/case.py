"""Pytest item replaying a single story path.

Errors raised by hooks and step actions propagate as test errors;
failed expectations reported by the driver fail the test with an
`AssertionError`. Deferred stories and paths are reported as skipped,
the latter only after their written steps passed.
"""

from typing import TYPE_CHECKING

import pytest

from pytest_stories.names import DEFERRED_MARKER

if TYPE_CHECKING:
    from typing import Any

    from pytest_stories.core import Path, StoryBook
    from pytest_stories.schema import ExpectationResults, Story, Topic


class StoryItem(pytest.Item):
    """Pytest item executing one path of a story."""

    def __init__(self, *,
                 book: 'StoryBook',
                 topic: 'Topic',
                 story: 'Story',
                 story_path: 'Path | None',
                 **kwargs: 'Any') -> None:
        """Initialize a pytest item backed by a story path.

        Args:
            book: Book holding the global hooks.
            topic: Topic owning the story.
            story: Story owning the path.
            story_path: Path to replay, `None` for a wholly deferred story.
            **kwargs: Keyword pytest.Item arguments.
        """
        super().__init__(**kwargs)

        self.book = book
        self.topic = topic
        self.story = story
        self.story_path = story_path

    @staticmethod
    def make_name(topic: 'Topic', story: 'Story', path: 'Path | None' = None) -> str:
        """Build the item name `topic / story / path`."""
        parts = [topic.description, story.description]
        if path is not None and path.description:
            parts.append(path.description)

        return ' / '.join(parts)

    @staticmethod
    def fail_expectations(results: 'ExpectationResults') -> AssertionError:
        """Create an AssertionError for failed expectations."""
        message = f'Expectations failed: {results.failed}'
        if results.error is not None and not isinstance(results.error, BaseException):
            message += f'\n{results.error}'

        return AssertionError(message)

    def runtest(self) -> None:
        """Replay the story path."""
        if self.story_path is None:
            pytest.skip(DEFERRED_MARKER)

        session = self.config.stories_session  # type: ignore[attr-defined]
        runner = session.runner(self.book, self.topic)

        outcome = runner.run_path(self.story, self.story_path)

        if outcome.error is not None:
            raise outcome.error

        if not outcome.results.ok:
            error = self.fail_expectations(outcome.results)
            if isinstance(outcome.results.error, BaseException):
                raise error from outcome.results.error
            raise error

        if outcome.deferred:
            pytest.skip(DEFERRED_MARKER)

    def reportinfo(self) -> tuple['Any', int | None, str]:
        """Report the location of the item."""
        return self.path, None, self.name
