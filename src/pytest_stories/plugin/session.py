"""Shared state of the stories run within a pytest session.

Story files are collected one by one, while a shared book may collect the
topics of several files. Topics are therefore claimed by the first file
whose collection declared them. Runners and their transcript recorders are
kept per topic, so paths of the same topic run as separate items still
share one transcript.
"""

import logging
from functools import partial
from typing import TYPE_CHECKING

from pytest_stories.core import StoryLoader, TopicRunner, TranscriptWriter

if TYPE_CHECKING:
    from pathlib import Path

if TYPE_CHECKING:
    from pytest_stories.core import StoryBook
    from pytest_stories.schema import DriverFactory, Topic
    from pytest_stories.settings import StorySettings

logger = logging.getLogger(__name__)


class StorySession:
    """Loader, driver and runners shared by the collected story items."""

    def __init__(self, settings: 'StorySettings') -> None:
        """Initialize a session.

        Args:
            settings: Resolved runtime settings.
        """
        self.settings = settings
        self.loader = StoryLoader(strict=settings.strict)

        self.setup_loaded = False
        self.claimed: set[int] = set()
        self.runners: dict[int, TopicRunner] = {}

        self._driver_factory: DriverFactory | None = None

    def collect(self, path: 'Path') -> list[tuple['StoryBook', 'Topic']]:
        """Load a story file and claim the topics it declared.

        The setup file is loaded before the first story file.

        Returns:
            Pairs of owning book and topic, in declaration order.
        """
        if not self.setup_loaded:
            self.setup_loaded = True
            self.loader.load_setup(path)

        topics = []
        for book in self.loader.find_books(self.loader.load_module(path)):
            for topic in book.topics:
                if id(topic) in self.claimed:
                    continue
                self.claimed.add(id(topic))
                topics.append((book, topic))

        return topics

    @property
    def driver_factory(self) -> 'DriverFactory':
        """Driver factory bound to the session settings, loaded on first use."""
        if self._driver_factory is None:
            factory = self.loader.load_driver(self.settings.driver)
            self._driver_factory = partial(factory, self.settings)

        return self._driver_factory

    def runner(self, book: 'StoryBook', topic: 'Topic') -> TopicRunner:
        """Get the runner of a topic, creating it on first use."""
        if (runner := self.runners.get(id(topic))) is None:
            runner = self.runners[id(topic)] = TopicRunner(
                topic,
                driver_factory=self.driver_factory,
                hooks=book.hooks,
            )

        return runner

    def write_transcripts(self) -> None:
        """Write the transcripts of every topic that ran."""
        if self.settings.transcripts is None or not self.runners:
            return

        writer = TranscriptWriter(self.settings.transcripts)
        for runner in self.runners.values():
            path = writer.write(runner.recorder.transcript)
            logger.info('Transcript written to %s', path)

        writer.write_index(self.settings.commit)
