"""Command-line runner for story files.

Story files are loaded together with their setup file, every topic is
replayed against drivers created from the configured factory, and the
outcome of every path is printed. Transcripts are written when an output
directory is given.
"""

import logging
import re
from fnmatch import translate
from functools import partial
from json import dumps
from pathlib import Path
from re import Pattern
from typing import TYPE_CHECKING

from click import Path as PathParam
from click import ClickException, argument, echo, group, option

from pytest_stories.console import ConsoleReporter
from pytest_stories.core import Filter, RunOptions, RunSummary, StoryLoader, TranscriptWriter
from pytest_stories.errors import StoryError
from pytest_stories.names import DEFERRED_MARKER
from pytest_stories.schema import Transcript
from pytest_stories.settings import StorySettings

if TYPE_CHECKING:
    from click import Context, Parameter

    from pytest_stories.core import StoryBook

StoryFilepath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)

OutputDirectory = PathParam(
    file_okay=False,
    writable=True,
    path_type=Path,
)


def _patterns(_ctx: 'Context', _param: 'Parameter',
              value: str | None) -> tuple[Pattern[str], ...] | None:
    """Compile comma-separated fnmatch patterns."""
    if value is None:
        return None

    return tuple(
        re.compile(translate(pattern.strip()))
        for pattern in value.split(',')
        if pattern.strip()
    )


def _filter(include: tuple[Pattern[str], ...] | None,
            exclude: tuple[Pattern[str], ...] | None) -> Filter:
    """Build a description filter from option values."""
    return Filter(include=include, exclude=exclude or ())


def _load(files: tuple[Path, ...], setup: Path | None, *,
          strict: bool) -> tuple[StoryLoader, list['StoryBook']]:
    """Load the story books of a run."""
    loader = StoryLoader(strict=strict)

    try:
        books = loader.load_run(files, setup)
    except StoryError as error:
        raise ClickException(f'{error}') from error

    return loader, books


@group(help='Command-line utilities for story-based API tests.')
def cli() -> None:
    """Root CLI group for pytest-stories tools."""
    return None


@cli.command(
    name='run',
    help='Run the stories declared in story files.',
)
@option('-s', '--suites', callback=_patterns,
        help='Only run topics that match the comma-separated fnmatch patterns.')
@option('-S', '--not-suites', callback=_patterns,
        help='Only run topics that do not match the comma-separated fnmatch patterns.')
@option('-t', '--tests', callback=_patterns,
        help='Only run stories that match the comma-separated fnmatch patterns.')
@option('-T', '--not-tests', callback=_patterns,
        help='Only run stories that do not match the comma-separated fnmatch patterns.')
@option('-p', '--paths', callback=_patterns,
        help='Only run paths that match the comma-separated fnmatch patterns.')
@option('-P', '--not-paths', callback=_patterns,
        help='Only run paths that do not match the comma-separated fnmatch patterns.')
@option('-o', '--transcripts', type=OutputDirectory,
        help='Output directory for transcripts.')
@option('-e', '--endpoint',
        help=(
            'URL for the base path of the API. If a path portion is included, '
            'for example /api/v1/, it is appended to all requests.'
        ))
@option('-c', '--setup', type=StoryFilepath,
        help=(
            'Location of the setup file. By default, every directory from the '
            'first story file up to the root is checked for stories_setup.py.'
        ))
@option('-d', '--driver',
        help='Driver factory as module:attribute.')
@option('--commit',
        help='Revision of the API under test, stored in the transcripts index.')
@option('--strict', is_flag=True, default=False,
        help='Fail on loading issues instead of warning.')
@option('-v', '--verbose', count=True,
        help='Log progress; repeat for debug output.')
@argument('files', nargs=-1, required=True, type=StoryFilepath)
def run_stories(files: tuple[Path, ...],  # noqa: PLR0913
                suites: tuple[Pattern[str], ...] | None,
                not_suites: tuple[Pattern[str], ...] | None,
                tests: tuple[Pattern[str], ...] | None,
                not_tests: tuple[Pattern[str], ...] | None,
                paths: tuple[Pattern[str], ...] | None,
                not_paths: tuple[Pattern[str], ...] | None,
                transcripts: Path | None,
                endpoint: str | None,
                setup: Path | None,
                driver: str | None,
                commit: str | None,
                strict: bool,
                verbose: int) -> None:
    """Run story files and report every path."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG if verbose > 1 else logging.INFO)

    settings = StorySettings.with_overrides(
        endpoint=endpoint,
        driver=driver,
        transcripts=transcripts,
        commit=commit,
        strict=strict or None,
    )

    loader, books = _load(files, setup, strict=settings.strict)

    try:
        factory = loader.load_driver(settings.driver)
    except StoryError as error:
        raise ClickException(f'{error}') from error

    options = RunOptions(
        topics=_filter(suites, not_suites),
        stories=_filter(tests, not_tests),
        paths=_filter(paths, not_paths),
    )

    writer = None
    if settings.transcripts is not None:
        writer = TranscriptWriter(settings.transcripts)

    reporter = ConsoleReporter()
    total = RunSummary()

    for book in books:
        summary = book.run(
            options,
            reporter.path,
            writer.write if writer else None,
            driver_factory=partial(factory, settings),
            on_topic=reporter.topic,
            on_story=reporter.story,
        )

        total.merge(summary)

    if writer is not None:
        writer.write_index(settings.commit)

    if not reporter.summary(total):
        raise SystemExit(1)


@cli.command(
    name='list',
    help='Print topics, stories and their paths without running them.',
)
@option('-c', '--setup', type=StoryFilepath,
        help='Location of the setup file.')
@argument('files', nargs=-1, required=True, type=StoryFilepath)
def list_stories(files: tuple[Path, ...], setup: Path | None) -> None:
    """Print the enumerated paths of story files."""
    _, books = _load(files, setup, strict=False)

    for book in books:
        for topic in book.topics:
            echo(topic.description)
            for story in topic.stories:
                echo(f'  {story.description}')
                if story.deferred:
                    echo(f'    {DEFERRED_MARKER}')
                    continue
                for path in story.paths():
                    echo(f'    {path.description or "<body>"}')


@cli.command(
    name='schema',
    help='Print the transcript JSON Schema to standard output.',
)
def print_schema() -> None:
    """Generate and print the JSON Schema."""
    echo(dumps(
        Transcript.model_json_schema(by_alias=True),
        ensure_ascii=False,
        indent=4,
    ))


if __name__ == '__main__':
    cli()
