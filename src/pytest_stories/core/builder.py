"""DSL builders for topics, stories and step graphs.

This module defines the functions and builder objects used by test
authors to declare stories. Declarations are normalized into immutable
step graph nodes:

- nested lists and tuples become fork groups (of any length);
- `None` becomes the deferred marker and truncates the rest of its
  sequence;
- a bare callable used as a whole story becomes the anonymous body step.

No process-wide state is involved: topics are collected by an explicit
`StoryBook` instance, and topic bodies receive a `TopicBuilder`.
"""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, overload

from pydantic import ValidationError

from pytest_stories.errors import ErrorContext, StoryBuildError
from pytest_stories.names import BODY_DESCRIPTION
from pytest_stories.schema import DEFERRED, Deferred, Fork, Node, PathHooks, Step, Story, Topic

if TYPE_CHECKING:
    from collections.abc import Iterable

if TYPE_CHECKING:
    from pydantic import BaseModel

if TYPE_CHECKING:
    from pytest_stories.schema import DriverAction, DriverFactory

    from .engine import PathCallback, RunOptions, RunSummary, StoryCallback, TopicCallback, TranscriptCallback

#: Step specification as written by test authors.
type Spec = Node | Sequence['Spec'] | None

#: Topic body receiving the topic builder.
type TopicBody = Callable[['TopicBuilder'], Any]

#: Shared deferred marker exposed to test authors.
deferred = DEFERRED


def _validate[T: BaseModel](model: type[T], **data: Any) -> T:  # noqa: ANN401
    """Build a model converting validation failures into build errors."""
    try:
        return model(**data)

    except ValidationError as base:
        raise StoryBuildError.from_pydantic_error(base, data=data) from base


def _ensure_hook(hook: Any, name: str) -> 'DriverAction':  # noqa: ANN401
    """Check that a hook is callable."""
    if not callable(hook):
        raise StoryBuildError(
            f'Hook {name!r} must be a callable',
            context=ErrorContext(element={name: hook}),
        )

    return hook


def build_nodes(items: 'Iterable[Spec]') -> tuple[Node, ...]:
    """Normalize an ordered sequence of specification elements.

    Args:
        items: Steps, fork groups, deferred markers, nested sequences
            or `None`.

    Returns:
        Normalized nodes. Everything after the first deferred element
        is dropped.

    Raises:
        StoryBuildError: If an element is not a valid specification.
    """
    nodes: list[Node] = []

    for item in items:
        if item is None or isinstance(item, Deferred):
            nodes.append(DEFERRED if item is None else item)
            break

        if isinstance(item, (Step, Fork)):
            nodes.append(item)
        elif isinstance(item, (list, tuple)):
            nodes.append(Fork(nodes=build_nodes(item)))
        else:
            raise StoryBuildError(
                'Step specification must contain steps, sequences or deferred markers',
                context=ErrorContext(element=[item]),
            )

    return tuple(nodes)


def build_spec(value: Spec) -> tuple[Node, ...] | None:
    """Normalize a whole step specification.

    Args:
        value: A single node, an ordered sequence, or `None`.

    Returns:
        Normalized root sequence, or `None` for an absent specification.

    Raises:
        StoryBuildError: If the specification is invalid.
    """
    if value is None:
        return None

    if isinstance(value, (Step, Fork, Deferred)):
        return build_nodes((value,))

    if isinstance(value, (list, tuple)):
        return build_nodes(value)

    raise StoryBuildError(
        'Step specification must be a step, a sequence or a deferred marker',
        context=ErrorContext(element=[value]),
    )


def build_story_spec(*spec: Any) -> tuple[Node, ...] | None:  # noqa: ANN401
    """Normalize the specification arguments of a story declaration."""
    if not spec or spec == (None,):
        return None

    if len(spec) == 1:
        body, = spec
        if isinstance(body, (list, tuple)):
            return build_nodes(body)
        if callable(body):
            return (_validate(Step, description=BODY_DESCRIPTION, action=body),)

    return build_nodes(spec)


@overload
def step(description: str, action: None = None) -> Deferred:
    ...  # pragma: no cover


@overload
def step(description: str, action: 'DriverAction', *continuations: Spec) -> Step:
    ...  # pragma: no cover


def step(description: str, action: 'DriverAction | None' = None,
         *continuations: Spec) -> Step | Deferred:
    """Declare a step.

    Args:
        description: Human-readable step description.
        action: Callable invoked with the path driver. A step without an
            action stands for further steps that are not written yet.
        *continuations: Optional continuation specifications. A single
            continuation chains after the step; several continuations are
            alternatives, each one a fork group. Continuations after a
            `None` are dropped.

    Returns:
        The declared step, or a deferred marker for a step without action.

    Raises:
        StoryBuildError: If the action is not callable, or continuations
            are given to a step without action.
    """
    if action is None:
        if continuations:
            raise StoryBuildError(
                f'Step {description!r} without action can not have continuations',
            )
        return _validate(Deferred, description=description)

    items: Sequence[Spec] = continuations
    if len(continuations) > 1:
        items = [
            item if item is None else [item]
            for item in continuations
        ]

    return _validate(
        Step,
        description=description,
        action=action,
        next=build_nodes(items),
    )


def branch(*specs: Spec) -> Fork:
    """Declare alternative continuations.

    Each argument becomes its own fork group; all of them continue from
    the path reached before the branch.

    Raises:
        StoryBuildError: If no alternative is given or one is invalid.
    """
    if not specs:
        raise StoryBuildError('Branch requires at least one step specification')

    return Fork(nodes=tuple(
        Fork(nodes=build_nodes(spec if isinstance(spec, (list, tuple)) else (spec,)))
        for spec in specs
    ))


class TopicBuilder:
    """Collects the stories and hooks of one topic declaration."""

    def __init__(self, description: str) -> None:
        """Initialize a builder for a topic."""
        self.description = description
        self.stories: list[Story] = []
        self.hooks: dict[str, DriverAction] = {}

    def before(self, hook: 'DriverAction') -> 'DriverAction':
        """Register the topic hook run before every path of the topic."""
        self.hooks['before'] = _ensure_hook(hook, 'before')
        return hook

    def after(self, hook: 'DriverAction') -> 'DriverAction':
        """Register the topic hook run after every path of the topic."""
        self.hooks['after'] = _ensure_hook(hook, 'after')
        return hook

    def story(self, description: str, *spec: Any) -> Story:  # noqa: ANN401
        """Declare a story.

        Args:
            description: Human-readable story description.
            *spec: Nothing or `None` for a wholly deferred story; a single
                callable for a whole-body story; a single sequence, or
                several elements, for an ordered step specification.

        Returns:
            The declared story.
        """
        story = _validate(Story, description=description, spec=build_story_spec(*spec))
        self.stories.append(story)

        return story

    def build(self) -> Topic:
        """Build the immutable topic."""
        return _validate(
            Topic,
            description=self.description,
            stories=tuple(self.stories),
            **self.hooks,
        )


class StoryBook:
    """Explicit registry of declared topics and global path hooks."""

    def __init__(self) -> None:
        """Initialize an empty book."""
        self.topics: list[Topic] = []
        self._hooks: dict[str, DriverAction] = {}

    def before_each(self, hook: 'DriverAction') -> 'DriverAction':
        """Register the global hook run before every path."""
        self._hooks['before'] = _ensure_hook(hook, 'before')
        return hook

    def after_each(self, hook: 'DriverAction') -> 'DriverAction':
        """Register the global hook run after every path."""
        self._hooks['after'] = _ensure_hook(hook, 'after')
        return hook

    @property
    def hooks(self) -> PathHooks:
        """Global path hooks."""
        return PathHooks(**self._hooks)

    @overload
    def topic(self, description: str, body: None = None) -> Callable[[TopicBody], Topic]:
        ...  # pragma: no cover

    @overload
    def topic(self, description: str, body: TopicBody) -> Topic:
        ...  # pragma: no cover

    def topic(self, description: str,
              body: TopicBody | None = None) -> Topic | Callable[[TopicBody], Topic]:
        """Declare a topic.

        The body is called with a `TopicBuilder`; the resulting topic is
        stored in the book. Without a body, returns a decorator.

        Args:
            description: Human-readable topic description.
            body: Callable declaring the stories and hooks of the topic.

        Returns:
            The declared topic, or a decorator declaring it.
        """
        def declare(body: TopicBody) -> Topic:
            builder = TopicBuilder(description)
            body(builder)

            topic = builder.build()
            self.topics.append(topic)

            return topic

        if body is None:
            return declare

        return declare(body)

    suite = topic

    def run(self, options: 'RunOptions | None' = None,
            on_path: 'PathCallback | None' = None,
            on_transcript: 'TranscriptCallback | None' = None, *,
            driver_factory: 'DriverFactory',
            on_topic: 'TopicCallback | None' = None,
            on_story: 'StoryCallback | None' = None) -> 'RunSummary':
        """Run the book topics with its global hooks.

        See `pytest_stories.core.engine.run_topics`.
        """
        from .engine import run_topics  # noqa: PLC0415

        return run_topics(
            self.topics,
            options,
            on_path,
            on_transcript,
            driver_factory=driver_factory,
            hooks=self.hooks,
            on_topic=on_topic,
            on_story=on_story,
        )
