"""Tests for the command-line runner."""

from json import loads
from textwrap import dedent
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from pytest_stories.__main__ import cli

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture

DRIVER = 'tests.examples.drivers:create'

SETUP_CONTENT = '''
from pytest_stories import StoryBook

book = StoryBook()
'''

USERS_CONTENT = '''
from pytest_stories import step
from stories_setup import book


def create(driver):
    status, _ = driver.request('POST', '/users', {'name': 'bob'})
    driver.expect(status == 201)


def listing(driver):
    status, users = driver.request('GET', '/users')
    driver.expect(status == 200)
    driver.expect(len(users) == 1)


@book.topic('users')
def users(topic):
    topic.before(lambda driver: driver.request('GET', '/version', actor='admin'))
    topic.story(
        'crud',
        step('create', create),
        [step('list', listing)],
        [step('delete', lambda driver: driver.request('DELETE', '/users/bob'))],
    )
    topic.story('archive')
'''

FAILING_CONTENT = '''
from pytest_stories import step
from stories_setup import book


def missing(driver):
    status, _ = driver.request('GET', '/missing')
    driver.expect(status == 200, 'expected 200 from /missing')


def broken(driver):
    raise ValueError('broken step')


@book.topic('failures')
def failures(topic):
    topic.story('missing', step('get missing', missing))
    topic.story('broken', broken)
'''


@pytest.fixture
def stories(story_dir: 'Path') -> 'Path':
    """Provide a directory with a setup file and story files."""
    for name, content in (
        ('stories_setup.py', SETUP_CONTENT),
        ('stories_users.py', USERS_CONTENT),
        ('stories_failures.py', FAILING_CONTENT),
    ):
        (story_dir / name).write_text(dedent(content), encoding='utf-8')

    return story_dir


def test_run_ok(stories: 'Path') -> None:
    """Report passing paths and deferred stories."""
    result = CliRunner().invoke(cli, [
        'run', '-d', DRIVER,
        (stories / 'stories_users.py').as_posix(),
    ])

    assert result.exit_code == 0, result.output

    lines = result.output.splitlines()
    assert 'users'.rjust(80) in lines
    assert '-' * 80 in lines
    assert lines[lines.index('crud'):] == [
        'crud',
        '  ok: create > list',
        '  ok: create > delete',
        'archive',
        '  #### deferred ####',
        'Expectations Passed: 4'.rjust(80),
        'ALL OK!'.rjust(80),
    ]


def test_run_failed(stories: 'Path') -> None:
    """Report failing paths with details and exit with an error."""
    result = CliRunner().invoke(cli, [
        'run', '-d', DRIVER,
        (stories / 'stories_failures.py').as_posix(),
    ])

    assert result.exit_code == 1

    lines = result.output.splitlines()
    assert '  XX: get missing' in lines
    assert 'expected 200 from /missing' in lines
    assert '  XX: ' in lines
    assert 'Expectations Failed: 1'.rjust(80) in lines
    assert 'FAILED!'.rjust(80) in lines
    assert "ValueError('broken step')" in result.output


def test_run_filters(stories: 'Path') -> None:
    """Select topics, stories and paths with fnmatch patterns."""
    result = CliRunner().invoke(cli, [
        'run', '-d', DRIVER,
        '-S', 'fail*',
        '-t', 'crud,archive',
        '-P', '*delete',
        (stories / 'stories_users.py').as_posix(),
        (stories / 'stories_failures.py').as_posix(),
    ])

    assert result.exit_code == 0, result.output
    assert 'failures' not in result.output
    assert '  ok: create > list' in result.output
    assert 'delete' not in result.output


def test_run_transcripts(stories: 'Path') -> None:
    """Write topic transcripts and their index."""
    output = stories / 'transcripts'

    result = CliRunner().invoke(cli, [
        'run', '-d', DRIVER,
        '-o', output.as_posix(),
        '--commit', 'abc123',
        (stories / 'stories_users.py').as_posix(),
    ])

    assert result.exit_code == 0, result.output

    index = loads((output / 'index2.json').read_text(encoding='utf-8'))
    assert index == {
        'commit': 'abc123',
        'transcripts': [{'desc': 'users (stories)', 'file': 'users_(stories).json'}],
    }

    transcript = loads((output / 'users_(stories).json').read_text(encoding='utf-8'))
    assert transcript['setup']['actions'][0]['actor'] == 'admin'

    crud, = transcript['stories']
    assert [step['description'] for step in crud['steps']] == ['create', 'list', 'delete']


def test_run_driver_from_environment(stories: 'Path', mocker: 'MockerFixture') -> None:
    """Resolve the driver from the environment."""
    mocker.patch.dict('os.environ', {'STORIES_DRIVER': DRIVER})

    result = CliRunner().invoke(cli, ['run', (stories / 'stories_users.py').as_posix()])

    assert result.exit_code == 0, result.output


def test_run_invalid_driver(stories: 'Path') -> None:
    """Fail with a readable message when the driver can not be loaded."""
    result = CliRunner().invoke(cli, [
        'run', '-d', 'tests.examples.missing:create',
        (stories / 'stories_users.py').as_posix(),
    ])

    assert result.exit_code == 1
    assert "Failed to resolve driver 'tests.examples.missing:create'" in result.output


def test_run_requires_files() -> None:
    """Refuse to run without story files."""
    result = CliRunner().invoke(cli, ['run', '-d', DRIVER])

    assert result.exit_code == 2


def test_list(stories: 'Path') -> None:
    """Print enumerated paths without running them."""
    result = CliRunner().invoke(cli, ['list', (stories / 'stories_users.py').as_posix()])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == [
        'users',
        '  crud',
        '    create > list',
        '    create > delete',
        '  archive',
        '    ### deferred ###',
    ]


def test_schema() -> None:
    """Print the transcript JSON Schema."""
    result = CliRunner().invoke(cli, ['schema'])

    assert result.exit_code == 0
    schema = loads(result.output)
    assert schema['title'] == 'Transcript'
    assert set(schema['properties']) == {'description', 'setup', 'stories'}

