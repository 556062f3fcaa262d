"""Pytest plugin for collecting and executing story files.

This module integrates `pytest-stories` with pytest by:
- registering custom command-line options;
- configuring a shared `StorySession` from options and environment;
- collecting story files as pytest test items, one per story path;
- writing topic transcripts when the session finishes.

Python files matching the pattern `stories_*.py` are collected, except
the `stories_setup.py` setup file which is loaded before them.
"""

from re import match
from typing import TYPE_CHECKING

from pytest_stories.core.loader import SETUP_FILENAME

from .session import StorySession
from .spec import StoryFile

if TYPE_CHECKING:
    from pathlib import Path

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.main import Session
    from _pytest.nodes import Node


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-stories.

    Args:
        parser: Pytest argument parser.
    """
    parser.addoption(
        '--stories-driver',
        dest='stories_driver',
        default=None,
        help=(
            'Driver factory as `module:attribute`. By default, the factory '
            'is discovered from the `stories_drivers` entry point group.'
        ),
    )
    parser.addoption(
        '--stories-endpoint',
        dest='stories_endpoint',
        default=None,
        help='Base URL of the API under test.',
    )
    parser.addoption(
        '--stories-transcripts',
        dest='stories_transcripts',
        default=None,
        help='Output directory for topic transcripts.',
    )
    parser.addoption(
        '--stories-strict',
        action='store_true',
        dest='stories_strict',
        default=False,
        help=(
            'Fail on ambiguous drivers or a missing setup file '
            'instead of emitting warnings.'
        ),
    )


def pytest_configure(config: 'Config') -> None:
    """Configure pytest-stories integration.

    This hook resolves `StorySettings` from options and environment and
    attaches a shared `StorySession` to the pytest configuration object
    as `config.stories_session`.

    Args:
        config: Pytest configuration object.
    """
    from pytest_stories.settings import StorySettings  # noqa: PLC0415

    settings = StorySettings.with_overrides(
        driver=config.getoption('--stories-driver', default=None),
        endpoint=config.getoption('--stories-endpoint', default=None),
        transcripts=config.getoption('--stories-transcripts', default=None),
        strict=config.getoption('--stories-strict', default=False) or None,
    )

    config.stories_session = StorySession(settings)  # type: ignore[attr-defined]


def pytest_collect_file(parent: 'Node', file_path: 'Path') -> StoryFile | None:
    """Collect story files.

    Args:
        parent: Parent pytest collection node.
        file_path: Path to the file being considered.

    Returns:
        A `StoryFile` collector if the file is a story file, otherwise ``None``.
    """
    if file_path.name != SETUP_FILENAME and match(r'^stories_.+\.py$', file_path.name):
        return StoryFile.from_parent(
            parent,
            path=file_path,
        )

    return None


def pytest_sessionfinish(session: 'Session') -> None:
    """Write the transcripts of the topics run during the session."""
    stories_session: StorySession | None = getattr(session.config, 'stories_session', None)
    if stories_session is not None:
        stories_session.write_transcripts()
