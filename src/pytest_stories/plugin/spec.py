"""Pytest collector of story files.

Each collected file is imported, and every story of the topics it
declared becomes one pytest item per enumerated path. A wholly deferred
story becomes a single item reported as skipped.
"""

from typing import TYPE_CHECKING

import pytest

from .case import StoryItem

if TYPE_CHECKING:
    from collections.abc import Iterable


class StoryFile(pytest.File):
    """Pytest file collector for story files."""

    def collect(self) -> 'Iterable[StoryItem]':
        """Collect pytest items from a story file.

        Returns:
            Iterable of `StoryItem` instances for pytest execution.

        Raises:
            StoryError: If the file or its declarations are invalid.
        """
        session = self.config.stories_session  # type: ignore[attr-defined]

        for book, topic in session.collect(self.path):
            for story in topic.stories:
                if story.deferred:
                    yield StoryItem.from_parent(
                        self,
                        name=StoryItem.make_name(topic, story),
                        book=book,
                        topic=topic,
                        story=story,
                        story_path=None,
                    )
                    continue

                for story_path in story.paths():
                    yield StoryItem.from_parent(
                        self,
                        name=StoryItem.make_name(topic, story, story_path),
                        book=book,
                        topic=topic,
                        story=story,
                        story_path=story_path,
                    )
