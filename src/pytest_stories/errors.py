"""Core exception hierarchy.

This module defines base error and warning types used across the library
to report story construction failures, loading issues, and runtime errors
raised while replaying a path in a structured and extensible way.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import safe_dump

from pytest_stories.values import MAPPINGS, SCALARS, SEQUENCES

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint
    from typing import Self

    from pydantic import ValidationError

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_INDENT = 4


class ErrorContext(TypedDict, total=False):
    """Where an error happened and what element caused it.

    Every key is optional. Declaration errors usually carry only the
    element, runtime errors carry the full location as well.
    """

    #: Description of the topic being run.
    topic: str | None
    #: Description of the story being run.
    story: str | None
    #: Human-readable description of the path being run.
    path: str | None

    #: Position of the failing step within the path.
    step_num: int | None

    #: Element (step, hook or declaration) associated with the error.
    element: Any


def _opaque_free(value: Any) -> Any:  # noqa: ANN401
    """Replace everything but scalars and containers with a placeholder."""
    if value is None or isinstance(value, SCALARS):
        return value

    if isinstance(value, MAPPINGS):
        return {f'{key}': _opaque_free(item) for key, item in value.items()}

    if isinstance(value, SEQUENCES):
        return [_opaque_free(item) for item in value]

    return FORMAT_REPLACER


class ErrorFormatter:
    """Renders error messages with a location and an element snippet.

    The location names the topic, story, path and step being run. The
    snippet dumps the offending element as YAML, with actions, hooks and
    other runtime objects masked.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            The message followed by the known location and snippet.
        """
        if not context:
            return message

        details = cls.location(context) + cls.snippet(context)
        if not details:
            return message

        return f'{message}{linesep}{details}'

    @staticmethod
    def location(context: ErrorContext, indent: int = FORMAT_INDENT) -> str:
        """Describe where the error happened, one line per level."""
        prefix = ' ' * indent
        lines = []

        if topic := context.get('topic'):
            line = f'{prefix}in topic "{topic}"'
            if story := context.get('story'):
                line += f', story "{story}"'
            lines.append(line)

        if path := context.get('path'):
            line = f'{prefix}on path "{path}"'
            if (step_num := context.get('step_num')) is not None:
                line += f', step {step_num + 1}'
            lines.append(line)

        return ''.join(f'{line}{linesep}' for line in lines)

    @staticmethod
    def snippet(context: ErrorContext, indent: int = FORMAT_INDENT * 2) -> str:
        """Dump the failing element as an indented YAML fragment."""
        if (element := context.get('element')) is None:
            return ''

        dumped = safe_dump(
            _opaque_free(element),
            indent=SNIPPET_INDENT,
            sort_keys=False,
            allow_unicode=True,
        )
        prefix = ' ' * indent
        body = linesep.join(
            f'{prefix}{line}'
            for line in dumped.splitlines()
            if line.strip()
        )

        return f'{prefix}{SNIPPET_ELLIPSIS}{body}{linesep}'


class LoadWarning(UserWarning):
    """Warning for an ambiguous driver or a missing setup file.

    In strict mode the same issues raise `LoadError` instead.
    """


class StoryError(Exception, ErrorFormatter):
    """Base exception for all pytest-stories errors.

    Rendering the error appends the known location and the snippet of
    the failing element to the message.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional location and element.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return self.format(self.message, self.context)


class LoadError(StoryError):
    """Error raised for fatal loading failures.

    This exception is raised when a story file can not be imported, or
    when a driver entry point is invalid, missing, or fails to load.
    """

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Initialize a loading error.

        Args:
            message: Human-readable error description.
            entrypoint: Optional driver entry point associated with the error.
        """
        self.entrypoint = entrypoint

        super().__init__(message)


class StoryBuildError(StoryError):
    """Error raised during story declaration.

    This exception indicates an invalid use of the DSL: a non-callable
    action or hook, an unsupported element in a step specification, or
    continuations attached to a deferred step.
    """

    @classmethod
    def from_pydantic_error(cls, error: 'ValidationError', *,
                            data: Any = None) -> 'Self':  # noqa: ANN401
        """Create a build error from a Pydantic validation failure.

        Only the first reported issue is used as the message; the
        offending declaration is attached as the snippet element.

        Args:
            error: ValidationError raised by Pydantic.
            data: Declaration data that failed validation.

        Returns:
            StoryBuildError representing the validation failure.
        """
        message = 'Invalid declaration'
        for item in error.errors(include_url=False, include_input=False):
            location = '.'.join(f'{key}' for key in item['loc'])
            message = f'{item['msg']}'
            if location:
                message += f' ({location})'
            break

        return cls(message, context=ErrorContext(element=data))


class StoryRuntimeError(StoryError):
    """Error raised during path execution.

    This exception wraps any failure raised by a hook or a step action
    while a path is replayed against the driver.
    """

    @classmethod
    def from_element(cls, element: Any, *,  # noqa: ANN401, PLR0913
                     message: str | None = None,
                     topic: str | None = None,
                     story: str | None = None,
                     path: str | None = None,
                     step_num: int | None = None) -> 'Self':
        """Create a runtime error for a failing hook or step.

        Args:
            element: Serializable description of the failing element.
            message: An optional custom message.
            topic: Description of the topic being run.
            story: Description of the story being run.
            path: Description of the path being run.
            step_num: Position of the step within the path.

        Returns:
            StoryRuntimeError representing the failure.
        """
        error_context = ErrorContext(
            topic=topic,
            story=story,
            path=path,
            step_num=step_num,
            element=element,
        )

        error_message = 'Runtime error'
        if message:
            error_message += f'{linesep}{' ' * FORMAT_INDENT}{message}'

        return cls(error_message, context=error_context)
