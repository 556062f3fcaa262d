"""Driver contract consumed by the execution engine.

A driver performs HTTP calls on behalf of step actions, evaluates
expectations and reports counted results. The engine never talks to the
API itself; it only sequences driver calls and routes the driver's
recorded exchanges into the transcript.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pytest_stories.core.recorder import Scribe
    from pytest_stories.schema.results import ExpectationResults
    from pytest_stories.settings import StorySettings


@runtime_checkable
class Driver(Protocol):
    """Per-path handle used by hooks and step actions.

    A fresh driver is created for every executed path, so drivers are
    free to keep per-path state such as cookies or pending requests.
    """

    def wait(self) -> None:
        """Block until outstanding work of the previous call completes."""

    def scribing_on(self, scribe: 'Scribe') -> None:
        """Start reporting exchanges to the given scribe."""

    def scribing_off(self) -> None:
        """Stop reporting exchanges."""

    def results(self) -> 'ExpectationResults | Mapping[str, Any]':
        """Return counted expectation results accumulated for the path."""


#: Hooks and step actions receive the path driver and return nothing useful.
type DriverAction = Callable[[Driver], Any]

#: Factories bound to settings, as used by the engine.
type DriverFactory = Callable[[], Driver]

#: Factories exposed by driver packages via entry points.
type SettingsDriverFactory = Callable[['StorySettings'], Driver]
