"""Execution engine and run coordinator.

Paths are replayed strictly one after another: topics in order, stories
of a topic in order, paths of a story in enumeration order. Every path
gets a fresh driver and runs the global and topic before hooks, its
steps, and the after hooks. A failure aborts only the path that raised
it; it is reported and the run proceeds with the next path.
"""

import logging
from collections.abc import Callable
from re import Pattern
from typing import TYPE_CHECKING, Any

from pydantic import Field, NonNegativeInt

from pytest_stories.errors import StoryRuntimeError
from pytest_stories.models import RecordModel, SchemaModel
from pytest_stories.names import DEFERRED_MARKER, TRANSCRIPT_SUFFIX
from pytest_stories.schema import Deferred, ExpectationResults, PathHooks

from .recorder import TranscriptRecorder

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pytest_stories.schema import Driver, DriverAction, DriverFactory, Step, Story, Topic, Transcript

    from .paths import Path

logger = logging.getLogger(__name__)

#: Called once per executed or deferred path with
#: `(error, path description, expectation results)`.
type PathCallback = Callable[[BaseException | None, str, ExpectationResults | None], Any]

#: Called once per topic with its transcript after all its stories ran.
type TranscriptCallback = Callable[['Transcript'], Any]

#: Called when a topic with matching stories starts.
type TopicCallback = Callable[['Topic'], Any]

#: Called when a story starts, before any of its paths.
type StoryCallback = Callable[['Story'], Any]


class Filter(SchemaModel):
    """Include and exclude patterns applied to descriptions."""

    include: tuple[Pattern[str], ...] | None = Field(
        default=None,
        title='Include patterns',
        description='A description is accepted if any pattern matches. Unset accepts all.',
    )

    exclude: tuple[Pattern[str], ...] = Field(
        default=(),
        title='Exclude patterns',
        description='A description is rejected if any pattern matches.',
    )

    def accepts(self, value: str) -> bool:
        """Whether a description passes the filter."""
        if self.include is not None and not any(pattern.search(value) for pattern in self.include):
            return False

        return not any(pattern.search(value) for pattern in self.exclude)


class RunOptions(SchemaModel):
    """Filters selecting the topics, stories and paths to run."""

    topics: Filter = Field(default_factory=Filter)
    stories: Filter = Field(default_factory=Filter)
    paths: Filter = Field(default_factory=Filter)


class PathOutcome(SchemaModel):
    """Result of one executed path."""

    description: str
    deferred: bool = False
    error: BaseException | None = None
    results: ExpectationResults = Field(default_factory=ExpectationResults)

    @property
    def ok(self) -> bool:
        """Whether the path neither raised nor failed an expectation."""
        return self.error is None and self.results.ok


class RunSummary(RecordModel):
    """Aggregated counts over all executed paths."""

    paths: NonNegativeInt = 0
    deferred: NonNegativeInt = 0
    errors: NonNegativeInt = 0
    passed: NonNegativeInt = 0
    failed: NonNegativeInt = 0

    @property
    def ok(self) -> bool:
        """Whether no path raised and no expectation failed."""
        return self.errors == 0 and self.failed == 0

    def add(self, error: BaseException | None, results: ExpectationResults | None, *,
            deferred: bool = False) -> None:
        """Account for one reported path."""
        self.paths += 1
        if deferred:
            self.deferred += 1
        if error is not None:
            self.errors += 1
        if results is not None:
            self.passed += results.passed
            self.failed += results.failed

    def merge(self, other: 'RunSummary') -> None:
        """Add the counts of another summary."""
        self.paths += other.paths
        self.deferred += other.deferred
        self.errors += other.errors
        self.passed += other.passed
        self.failed += other.failed


class TopicRunner:
    """Replays the paths of one topic's stories."""

    def __init__(self, topic: 'Topic', *,
                 driver_factory: 'DriverFactory',
                 recorder: TranscriptRecorder | None = None,
                 hooks: PathHooks | None = None,
                 paths: Filter | None = None) -> None:
        """Initialize a topic runner.

        Args:
            topic: Topic to run.
            driver_factory: Callable creating a fresh driver per path.
            recorder: Transcript recorder of the topic.
            hooks: Global path hooks.
            paths: Filter applied to path descriptions.
        """
        self.topic = topic
        self.driver_factory = driver_factory
        self.recorder = recorder or TranscriptRecorder(f'{topic.description}{TRANSCRIPT_SUFFIX}')
        self.hooks = hooks or PathHooks()
        self.paths = paths or Filter()

    def select_paths(self, story: 'Story') -> list['Path']:
        """Enumerate the story paths accepted by the path filter."""
        return [
            path
            for path in story.paths()
            if self.paths.accepts(path.steps_description)
        ]

    def run_callable(self, executor: 'DriverAction', driver: 'Driver', element: Any, *,  # noqa: ANN401
                     story: 'Story', path: 'Path', step_num: int | None = None) -> None:
        """Invoke a hook or step action with unified error handling.

        Raises:
            AssertionError: Propagated as-is.
            StoryRuntimeError: Wrapped exception with path location.
        """
        try:
            executor(driver)

        except AssertionError:
            raise

        except Exception as base:
            raise StoryRuntimeError.from_element(
                element,
                message=f'{base!r}',
                topic=self.topic.description,
                story=story.description,
                path=path.description,
                step_num=step_num,
            ) from base

    def run_hook(self, hook: 'DriverAction | None', name: str, driver: 'Driver', *,
                 story: 'Story', path: 'Path', scribing: bool = False) -> None:
        """Run an optional hook, optionally capturing its exchanges."""
        if hook is None:
            return

        element = {'hook': name, 'action': getattr(hook, '__qualname__', repr(hook))}

        if not scribing:
            self.run_callable(hook, driver, element, story=story, path=path)
            return

        driver.scribing_on(self.recorder.scribe())
        try:
            self.run_callable(hook, driver, element, story=story, path=path)
        finally:
            driver.scribing_off()

    def run_step(self, step: 'Step', driver: 'Driver', *,
                 story: 'Story', path: 'Path', step_num: int) -> None:
        """Run a step action with recording enabled for the call only."""
        self.recorder.step(step.description, path.is_fork(step_num))
        driver.wait()

        element = {
            'step': step.description,
            'action': getattr(step.action, '__qualname__', repr(step.action)),
        }

        driver.scribing_on(self.recorder.scribe())
        try:
            self.run_callable(step.action, driver, element, story=story, path=path, step_num=step_num)
        finally:
            driver.scribing_off()

        self.recorder.end_step()

    def _replay(self, story: 'Story', path: 'Path') -> ExpectationResults:
        """Replay one path against a fresh driver."""
        driver = self.driver_factory()

        self.recorder.before_all()
        self.run_hook(self.hooks.before, 'before_each', driver, story=story, path=path, scribing=True)
        self.recorder.end_before_all()

        self.recorder.before()
        driver.wait()
        self.run_hook(self.topic.before, 'before', driver, story=story, path=path, scribing=True)
        self.recorder.end_before()

        self.recorder.story(story.description, key=story)
        self.recorder.path()

        for step_num, node in enumerate(path):
            if isinstance(node, Deferred):
                break
            self.run_step(node, driver, story=story, path=path, step_num=step_num)

        self.recorder.end_path()

        self.run_hook(self.topic.after, 'after', driver, story=story, path=path)
        self.run_hook(self.hooks.after, 'after_each', driver, story=story, path=path)

        return ExpectationResults.from_driver(driver.results())

    def run_path(self, story: 'Story', path: 'Path') -> PathOutcome:
        """Execute one path in isolation.

        Any exception raised while running hooks, steps or collecting
        results is captured in the outcome and never propagates.

        Args:
            story: Story owning the path.
            path: Path to execute.

        Returns:
            The path outcome.
        """
        description = path.description
        deferred = path.deferred is not None

        try:
            results = self._replay(story, path)

        except Exception as error:
            logger.debug('Path %r of story %r failed', description, story.description, exc_info=True)
            self.recorder.end_path()
            return PathOutcome(description=description, deferred=deferred, error=error)

        if deferred:
            logger.info('Path %r of story %r is deferred', description, story.description)

        return PathOutcome(description=description, deferred=deferred, results=results)

    def run_story(self, story: 'Story', on_path: PathCallback | None = None,
                  summary: RunSummary | None = None) -> RunSummary:
        """Run every selected path of a story.

        Args:
            story: Story to run.
            on_path: Callback invoked once per executed or deferred path.
            summary: Summary to account paths into.

        Returns:
            The updated summary.
        """
        if summary is None:
            summary = RunSummary()

        if story.deferred:
            logger.info('Story %r is deferred', story.description)
            summary.add(None, None, deferred=True)
            if on_path is not None:
                on_path(None, DEFERRED_MARKER, None)
            return summary

        logger.info('Running story %r', story.description)

        for path in self.select_paths(story):
            outcome = self.run_path(story, path)
            summary.add(outcome.error, outcome.results, deferred=outcome.deferred)
            if on_path is not None:
                on_path(outcome.error, outcome.description, outcome.results)

        self.recorder.end_story()

        return summary


def run_topics(topics: 'Iterable[Topic]',  # noqa: PLR0913
               options: RunOptions | None = None,
               on_path: PathCallback | None = None,
               on_transcript: TranscriptCallback | None = None, *,
               driver_factory: 'DriverFactory',
               hooks: PathHooks | None = None,
               on_topic: TopicCallback | None = None,
               on_story: StoryCallback | None = None) -> RunSummary:
    """Run topics, stories and paths sequentially.

    Topics without stories accepted by the story filter are skipped
    entirely and produce no transcript.

    Args:
        topics: Topics to run, in order.
        options: Topic, story and path filters.
        on_path: Callback invoked once per executed or deferred path.
        on_transcript: Callback invoked once per topic with its transcript.
        driver_factory: Callable creating a fresh driver per path.
        hooks: Global path hooks.
        on_topic: Callback invoked when a topic starts.
        on_story: Callback invoked when a story starts.

    Returns:
        Aggregated counts over all executed paths.
    """
    options = options or RunOptions()
    summary = RunSummary()

    for topic in topics:
        if not options.topics.accepts(topic.description):
            continue

        stories = [
            story
            for story in topic.stories
            if options.stories.accepts(story.description)
        ]
        if not stories:
            continue

        if on_topic is not None:
            on_topic(topic)

        runner = TopicRunner(
            topic,
            driver_factory=driver_factory,
            hooks=hooks,
            paths=options.paths,
        )

        for story in stories:
            if on_story is not None:
                on_story(story)
            runner.run_story(story, on_path, summary)

        if on_transcript is not None:
            on_transcript(runner.recorder.transcript)

    return summary
