"""Tests configurations and fixtures."""

import sys
from importlib.metadata import EntryPoint, EntryPoints
from typing import TYPE_CHECKING

import pytest

from tests.examples.drivers import FakeDriver

pytest_plugins = ('pytester',)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType

    from pytest_stories.schema import SettingsDriverFactory


@pytest.fixture
def calls() -> list[str]:
    """Provide a shared log of driver and hook calls."""
    return []


@pytest.fixture
def drivers() -> list[FakeDriver]:
    """Provide the list of drivers created by `driver_factory`."""
    return []


@pytest.fixture
def driver_factory(calls: list[str], drivers: list[FakeDriver]) -> 'Callable[[], FakeDriver]':
    """Provide a zero-argument factory creating fresh fake drivers.

    Every driver shares the `calls` log and is appended to `drivers`,
    so tests can check that each path received its own driver.
    """
    def factory() -> FakeDriver:
        driver = FakeDriver(calls=calls)
        drivers.append(driver)
        calls.append('driver')
        return driver

    return factory


@pytest.fixture
def story_dir(tmp_path: 'Path', mocker: 'MockerFixture') -> 'Path':
    """Provide a directory for story files with isolated module registry.

    Story modules are registered in `sys.modules` under their file stem;
    the registry is restored after the test so that files with the same
    names in other tests are imported afresh.
    """
    mocker.patch.dict(sys.modules)
    return tmp_path


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking `importlib.metadata.entry_points`.

    Returns a callable that patches `entry_points()` to simulate
    discovery of drivers in the `stories_drivers` entry point group.

    The returned factory allows configuring:
    - successfully loadable driver factories,
    - or an exception raised during factory loading,
    - or an empty entry point list.
    """
    def patch(*factories: 'SettingsDriverFactory', raises: Exception | None = None) -> 'MockType':
        """Patch `entry_points` with a controlled driver configuration.

        Args:
            factories: Objects to be returned by `EntryPoint.load()`.
                If empty, no entry points are registered.
            raises: Exception to raise when `EntryPoint.load()` is called.

        Returns:
            A mock patch object replacing `importlib.metadata.entry_points`
            for the duration of the test.
        """
        entrypoints = []
        for num, factory in enumerate(factories):
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'stories_drivers'
            ep.name = f'driver{num}'
            ep.value = f'tests.drivers:driver{num}'
            ep.load.return_value = factory
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
