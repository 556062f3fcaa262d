"""Story files and driver loading infrastructure.

Story files are plain Python modules declaring topics on `StoryBook`
instances. They are imported from their file paths; a module is also
registered under its file stem, so that story files can import a shared
`stories_setup` module loaded before them.

Drivers are referenced explicitly as `module:attribute` or discovered
from the `stories_drivers` entry point group. Ambiguities are reported
as warnings unless strict mode is enabled.
"""

import sys
from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path
from pkgutil import resolve_name
from typing import TYPE_CHECKING, Any
from warnings import warn

from pytest_stories.errors import LoadError, LoadWarning, StoryError

from .builder import StoryBook

if TYPE_CHECKING:
    from collections.abc import Iterable
    from importlib.metadata import EntryPoint
    from types import ModuleType

if TYPE_CHECKING:
    from pytest_stories.schema import SettingsDriverFactory

#: Name of the setup file looked up in the ancestors of story files.
SETUP_FILENAME = 'stories_setup.py'

#: Entry point group exposing driver factories.
DRIVERS_GROUP = 'stories_drivers'


class StoryLoader:
    """Loads story modules, setup files and driver factories.

    Attributes:
        strict_mode: If True, any loading issue raises an error.
            If False, non-fatal issues are emitted as warnings.
    """

    def __init__(self, strict: bool = False) -> None:
        """Initialize a loader.

        Args:
            strict: Whether to raise on non-fatal loading issues.
        """
        self.strict_mode = strict
        self.modules: dict[Path, ModuleType] = {}

    def emit_issue(self, message: str,
                   entrypoint: 'EntryPoint | None' = None) -> LoadError | None:
        """Emit a loading warning or return the exception.

        Args:
            message: Warning message to emit.
            entrypoint: Entry point associated with the issue, if applicable.

        Returns:
            LoadError on strict mode, otherwise `None`
                with producing a LoadWarning.
        """
        if self.strict_mode:
            return LoadError(message, entrypoint=entrypoint)

        warn(message, category=LoadWarning, stacklevel=2)

        return None

    def load_module(self, path: Path | str) -> 'ModuleType':
        """Import a story file.

        Loading the same file twice returns the already imported module.

        Args:
            path: Path to a Python file.

        Returns:
            The imported module.

        Raises:
            LoadError: If the file can not be imported.
            StoryError: If a declaration in the file is invalid.
        """
        path = Path(path).resolve()
        if (module := self.modules.get(path)) is not None:
            return module

        name = path.stem
        spec = spec_from_file_location(name, path)
        if spec is None or spec.loader is None:
            raise LoadError(f'Can not load stories from {path.as_posix()!r}')

        module = module_from_spec(spec)

        registered = name not in sys.modules
        if registered:
            sys.modules[name] = module

        try:
            spec.loader.exec_module(module)

        except StoryError:
            if registered:
                sys.modules.pop(name, None)
            raise

        except Exception as base:
            if registered:
                sys.modules.pop(name, None)
            raise LoadError(f'Failed to load stories from {path.as_posix()!r}') from base

        self.modules[path] = module

        return module

    @staticmethod
    def find_books(module: 'ModuleType') -> list[StoryBook]:
        """Find the story books declared at module level."""
        books: dict[int, StoryBook] = {}

        for value in vars(module).values():
            if isinstance(value, StoryBook):
                books.setdefault(id(value), value)

        return list(books.values())

    def load_books(self, paths: 'Iterable[Path | str]') -> list[StoryBook]:
        """Import story files and collect their books.

        Books shared between files are returned once, in first-seen order.
        """
        books: dict[int, StoryBook] = {}

        for path in paths:
            for book in self.find_books(self.load_module(path)):
                books.setdefault(id(book), book)

        return list(books.values())

    @staticmethod
    def find_setup_file(path: Path | str) -> Path | None:
        """Find the outermost setup file among the ancestors of a story file.

        Args:
            path: Path to a story file.

        Returns:
            Path to the setup file, or `None` if there is none.
        """
        found = None

        for directory in Path(path).resolve().parents:
            candidate = directory / SETUP_FILENAME
            if candidate.is_file():
                found = candidate

        return found

    def load_setup(self, path: Path | str,
                   setup: Path | str | None = None) -> 'ModuleType | None':
        """Load the setup file of a run.

        Args:
            path: Path to the first story file.
            setup: Explicit setup file; looked up from `path` when unset.

        Returns:
            The setup module, or `None` if no setup file exists.

        Raises:
            LoadError: If the setup file is missing on strict mode
                or can not be imported.
        """
        if setup is None:
            setup = self.find_setup_file(path)

        if setup is None:
            if error := self.emit_issue('Setup file not specified and not found'):
                raise error
            return None

        return self.load_module(setup)

    def load_run(self, paths: 'Iterable[Path | str]',
                 setup: Path | str | None = None) -> list[StoryBook]:
        """Load the setup file and the story files of a run.

        The setup file is looked up from the first story file and loaded
        before any story file. Books declared by the setup file come first.

        Raises:
            LoadError: If no story file is given.
        """
        paths = list(paths)
        if not paths:
            raise LoadError('No story files given')

        books: dict[int, StoryBook] = {}

        if (module := self.load_setup(paths[0], setup)) is not None:
            for book in self.find_books(module):
                books.setdefault(id(book), book)

        for book in self.load_books(paths):
            books.setdefault(id(book), book)

        return list(books.values())

    def _ensure_factory(self, factory: Any, name: str,  # noqa: ANN401
                        entrypoint: 'EntryPoint | None' = None) -> 'SettingsDriverFactory':
        """Check that a loaded driver factory is callable."""
        if not callable(factory):
            raise LoadError(f'Driver {name!r} is not callable', entrypoint=entrypoint)

        return factory

    def load_driver(self, reference: str | None = None) -> 'SettingsDriverFactory':
        """Load a driver factory.

        Args:
            reference: Explicit factory reference as `module:attribute`.
                When unset, the `stories_drivers` entry point group is used.

        Returns:
            Callable creating a driver from settings.

        Raises:
            LoadError: If no driver can be loaded, or several drivers are
                installed on strict mode.
        """
        if reference:
            try:
                factory = resolve_name(reference)
            except Exception as base:
                raise LoadError(f'Failed to resolve driver {reference!r}') from base

            return self._ensure_factory(factory, reference)

        from importlib.metadata import entry_points  # noqa: PLC0415

        entrypoints = list(entry_points().select(group=DRIVERS_GROUP))
        if not entrypoints:
            raise LoadError(f'No driver specified and no {DRIVERS_GROUP!r} entry point found')

        entrypoint = entrypoints[0]
        if len(entrypoints) > 1 and (error := self.emit_issue(
            f'Found {len(entrypoints)} drivers, using {entrypoint.name!r}',
            entrypoint,
        )):
            raise error

        try:
            factory = entrypoint.load()
        except Exception as base:
            raise LoadError(
                f'Failed to load driver entrypoint {entrypoint.name!r}',
                entrypoint=entrypoint,
            ) from base

        return self._ensure_factory(factory, entrypoint.name, entrypoint)
