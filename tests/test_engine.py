"""Tests for path replay and the run coordinator."""

import re
from fnmatch import translate
from typing import TYPE_CHECKING

import pytest

from pytest_stories import StoryBook, step
from pytest_stories.core import Filter, RunOptions, RunSummary, TopicRunner, run_topics
from pytest_stories.errors import StoryRuntimeError
from pytest_stories.names import DEFERRED_MARKER
from pytest_stories.schema import ExpectationResults, PathHooks

if TYPE_CHECKING:
    from collections.abc import Callable

    from pytest_stories import TopicBuilder
    from tests.examples.drivers import FakeDriver


def action(name: str, calls: list[str], *, passed: int = 0, failed: int = 0,
           url: str | None = None) -> 'Callable[[FakeDriver], None]':
    """Build a step action logging its call and counting expectations."""
    def run(driver: 'FakeDriver') -> None:
        calls.append(name)
        if url is not None:
            driver.request('GET', url)
        for _ in range(passed):
            driver.expect(True)
        for _ in range(failed):
            driver.expect(False, f'{name} failed')

    return run


def test_path_call_order(calls: list[str], driver_factory: 'Callable') -> None:
    """Run hooks and steps in order, toggling scribing around each call."""
    book = StoryBook()
    book.before_each(action('global before', calls))
    book.after_each(action('global after', calls))

    @book.topic('users')
    def users(topic: 'TopicBuilder') -> None:
        topic.before(action('topic before', calls))
        topic.after(action('topic after', calls))
        topic.story('crud', step('create', action('create', calls)))

    book.run(driver_factory=driver_factory)

    assert calls == [
        'driver',
        'scribing_on', 'global before', 'scribing_off',
        'wait',
        'scribing_on', 'topic before', 'scribing_off',
        'wait',
        'scribing_on', 'create', 'scribing_off',
        'topic after',
        'global after',
    ]


def test_fresh_driver_per_path(calls: list[str], drivers: list,
                               driver_factory: 'Callable') -> None:
    """Create one driver for every executed path."""
    topic = StoryBook().topic('users', lambda topic: topic.story(
        'crud',
        step('a', action('a', calls)),
        [step('b', action('b', calls))],
        [step('c', action('c', calls))],
    ))

    described = []
    run_topics([topic], on_path=lambda error, path, results: described.append(path),
               driver_factory=driver_factory)

    assert described == ['a > b', 'a > c']
    assert len(drivers) == 2
    assert [name for name in calls if name in 'abc'] == ['a', 'b', 'a', 'c']


def test_summary_sums_path_counts(calls: list[str], driver_factory: 'Callable') -> None:
    """Aggregate counts over every executed path."""
    topic = StoryBook().topic('users', lambda topic: topic.story(
        'crud',
        step('a', action('a', calls, passed=2)),
        [step('b', action('b', calls, passed=1, failed=1))],
        [step('c', action('c', calls, passed=3))],
    ))

    reported = []
    summary = run_topics([topic], on_path=lambda *args: reported.append(args),
                         driver_factory=driver_factory)

    assert [results.passed for _, _, results in reported] == [3, 5]
    assert [results.failed for _, _, results in reported] == [1, 0]

    assert summary.paths == 2
    assert summary.passed == 8
    assert summary.failed == 1
    assert summary.errors == 0
    assert not summary.ok


def test_failing_step_aborts_only_its_path(calls: list[str], driver_factory: 'Callable') -> None:
    """Report a raising step and proceed with the next path."""
    def fail(driver: 'FakeDriver') -> None:
        raise ValueError('boom')

    topic = StoryBook().topic('users', lambda topic: topic.story(
        'crud',
        step('a', action('a', calls)),
        [step('b', fail), step('never', action('never', calls))],
        [step('c', action('c', calls, passed=1))],
    ))

    reported = []
    summary = run_topics([topic], on_path=lambda *args: reported.append(args),
                         driver_factory=driver_factory)

    (error, description, results), ok = reported

    assert isinstance(error, StoryRuntimeError)
    assert isinstance(error.__cause__, ValueError)
    assert description == 'a > b > never'
    assert results == ExpectationResults()

    assert 'never' not in calls
    assert calls.count('scribing_on') == calls.count('scribing_off')

    assert ok[0] is None
    assert ok[1] == 'a > c'
    assert ok[2].passed == 1

    assert summary.errors == 1
    assert summary.passed == 1
    assert not summary.ok


def test_runtime_error_location(driver_factory: 'Callable') -> None:
    """Describe the location of a failing step."""
    def fail(driver: 'FakeDriver') -> None:
        raise KeyError('token')

    topic = StoryBook().topic('users', lambda topic: topic.story(
        'crud', step('a', lambda driver: None), step('b', fail),
    ))

    reported = []
    run_topics([topic], on_path=lambda *args: reported.append(args),
               driver_factory=driver_factory)

    (error, _, _), = reported
    message = f'{error}'

    assert message.startswith('Runtime error')
    assert "KeyError('token')" in message
    assert 'in topic "users", story "crud"' in message
    assert 'on path "a > b", step 2' in message
    assert 'step: b' in message


def test_assertion_error_propagates_unwrapped(driver_factory: 'Callable') -> None:
    """Report assertion errors as raised."""
    def fail(driver: 'FakeDriver') -> None:
        raise AssertionError('status mismatch')

    topic = StoryBook().topic('users', lambda topic: topic.story('crud', step('a', fail)))

    reported = []
    run_topics([topic], on_path=lambda *args: reported.append(args),
               driver_factory=driver_factory)

    (error, _, _), = reported
    assert type(error) is AssertionError


def test_failing_hook(calls: list[str], driver_factory: 'Callable') -> None:
    """Abort a path whose before hook raises."""
    def fail(driver: 'FakeDriver') -> None:
        raise RuntimeError('login failed')

    book = StoryBook()
    book.before_each(fail)
    book.topic('users', lambda topic: topic.story('crud', step('a', action('a', calls))))

    reported = []
    summary = book.run(on_path=lambda *args: reported.append(args),
                       driver_factory=driver_factory)

    (error, _, _), = reported
    assert isinstance(error, StoryRuntimeError)
    assert 'hook: before_each' in f'{error}'
    assert 'a' not in calls
    assert summary.errors == 1


def test_deferred_story(calls: list[str], driver_factory: 'Callable') -> None:
    """Report a wholly deferred story without running anything."""
    book = StoryBook()
    book.before_each(action('global before', calls))
    book.topic('users', lambda topic: topic.story('later'))

    reported = []
    summary = book.run(on_path=lambda *args: reported.append(args),
                       driver_factory=driver_factory)

    assert reported == [(None, DEFERRED_MARKER, None)]
    assert calls == []
    assert summary.deferred == 1
    assert summary.ok


def test_deferred_path(calls: list[str], driver_factory: 'Callable') -> None:
    """Run the written steps of a deferred path."""
    topic = StoryBook().topic('users', lambda topic: topic.story(
        'crud', step('a', action('a', calls)), step('b'),
    ))

    runner = TopicRunner(topic, driver_factory=driver_factory)
    summary = runner.run_story(topic.stories[0])

    assert 'a' in calls
    assert summary.paths == 1
    assert summary.deferred == 1
    assert summary.ok


def test_run_options_filters(calls: list[str], driver_factory: 'Callable') -> None:
    """Select topics, stories and paths by their descriptions."""
    book = StoryBook()
    book.topic('users', lambda topic: (
        topic.story('create', step('a', action('a', calls)), [step('b', action('b', calls))],
                    [step('c', action('c', calls))]),
        topic.story('delete', step('d', action('d', calls))),
    ))
    book.topic('groups', lambda topic: topic.story('create', step('e', action('e', calls))))

    options = RunOptions(
        topics=Filter(exclude=(re.compile('groups'),)),
        stories=Filter(include=(re.compile('^create$'),)),
        paths=Filter(exclude=(re.compile('> c$'),)),
    )

    topics = []
    book.run(options, driver_factory=driver_factory, on_topic=topics.append)

    assert [topic.description for topic in topics] == ['users']
    assert [name for name in calls if len(name) == 1] == ['a', 'b']


def test_path_filter_ignores_deferred_marker(calls: list[str], driver_factory: 'Callable') -> None:
    """Match path patterns against step descriptions of deferred paths."""
    topic = StoryBook().topic('users', lambda topic: topic.story(
        'crud', step('a', action('a', calls)), step('b', action('b', calls)), None,
    ))

    described = []
    summary = run_topics(
        [topic],
        RunOptions(paths=Filter(include=(re.compile(translate('a > b')),))),
        on_path=lambda error, path, results: described.append(path),
        driver_factory=driver_factory,
    )

    assert described == [f'a > b > {DEFERRED_MARKER}']
    assert summary.deferred == 1
    assert [name for name in calls if len(name) == 1] == ['a', 'b']


def test_topics_without_stories_skipped(driver_factory: 'Callable') -> None:
    """Produce no transcript for topics without matching stories."""
    book = StoryBook()
    book.topic('users', lambda topic: topic.story('create', step('a', lambda driver: None)))
    book.topic('groups', lambda topic: topic.story('delete', step('b', lambda driver: None)))

    transcripts = []
    stories = []
    book.run(
        RunOptions(stories=Filter(include=(re.compile('create'),))),
        on_transcript=transcripts.append,
        on_story=stories.append,
        driver_factory=driver_factory,
    )

    assert [transcript.description for transcript in transcripts] == ['users (stories)']
    assert [story.description for story in stories] == ['create']


def test_transcript_dedup_across_paths(driver_factory: 'Callable') -> None:
    """Record a shared prefix once while capturing every invocation."""
    captured = []

    def create(driver: 'FakeDriver') -> None:
        driver.doc('create a user')
        driver.request('POST', '/users')
        captured.append(driver.scribe.log)

    topic = StoryBook().topic('users', lambda topic: (
        topic.before(lambda driver: driver.request('GET', '/version', actor='admin')),
        topic.story(
            'crud',
            step('create', create),
            [step('list', lambda driver: driver.request('GET', '/users'))],
            [step('delete', lambda driver: driver.request('DELETE', '/users/bob'))],
        ),
    ))

    transcripts = []
    run_topics([topic], on_transcript=transcripts.append, driver_factory=driver_factory)

    transcript, = transcripts
    story, = transcript.stories

    assert [record.description for record in story.steps] == ['create', 'list', 'delete']
    assert [record.is_fork for record in story.steps] == [False, True, True]
    assert [record.depth for record in story.steps] == [0, 1, 1]

    assert len(captured) == 2
    assert captured[0] is story.steps[0]
    assert captured[1] is not story.steps[0]
    assert captured[1].actions[0].response.status_code == 201

    assert story.steps[0].doc_strings == {0: ['create a user']}
    assert story.steps[2].actions[0].response.status_code == 204

    assert [action.actor for action in transcript.setup.actions] == ['admin']


def test_results_validation() -> None:
    """Accept camel-case and snake-case driver results."""
    assert ExpectationResults.from_driver(None) == ExpectationResults()
    assert ExpectationResults.from_driver({
        'expectationsPassed': 2,
        'expectationsFailed': 1,
        'err': 'mismatch',
    }) == ExpectationResults(passed=2, failed=1, error='mismatch')
    assert ExpectationResults.from_driver({'passed': 1, 'extra': True}).passed == 1


def test_summary_merge() -> None:
    """Merge run summaries."""
    first = RunSummary(paths=1, passed=2)
    second = RunSummary(paths=2, errors=1, failed=3, deferred=1)

    first.merge(second)

    assert first.dump() == {
        'paths': 3,
        'deferred': 1,
        'errors': 1,
        'passed': 2,
        'failed': 3,
    }


@pytest.mark.parametrize('include, exclude, value, accepted', (
    pytest.param(None, (), 'anything', True, id='accept all'),
    pytest.param(('^a',), (), 'abc', True, id='include'),
    pytest.param(('^a',), (), 'bcd', False, id='not included'),
    pytest.param(None, ('c$',), 'abc', False, id='exclude'),
    pytest.param(('^a',), ('c$',), 'abc', False, id='exclude wins'),
))
def test_filter(include: tuple[str, ...] | None, exclude: tuple[str, ...],
                value: str, accepted: bool) -> None:
    """Accept descriptions by include and exclude patterns."""
    instance = Filter.model_validate({'include': include, 'exclude': exclude})

    assert instance.accepts(value) is accepted


def test_hooks_model_default() -> None:
    """Run without global hooks by default."""
    assert PathHooks() == PathHooks(before=None, after=None)

