"""Enumeration of linear paths through a story's step graph.

The enumerator walks a normalized step specification depth-first and in
declaration order. Steps chain sequentially within their sequence; a fork
group is walked with a copy of the path reached before it, so sibling fork
groups each restart from the same state. Paths are emitted only when a
sequence ends on a step or reaches a deferred marker.
"""

from typing import TYPE_CHECKING

from pytest_stories.names import BODY_DESCRIPTION, DEFERRED_MARKER, PATH_SEPARATOR
from pytest_stories.schema import Deferred, Fork, Step

from .builder import build_spec

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from pytest_stories.schema import Node

    from .builder import Spec


class Path(list[Step | Deferred]):
    """One concrete linear way through a story.

    A path is an ordered list of steps, optionally closed by a deferred
    marker. It also remembers which of its steps open a fork group, for
    reporting purposes.
    """

    def __init__(self, nodes: 'Iterable[Step | Deferred]' = (),
                 forks: 'Iterable[int]' = ()) -> None:
        """Initialize a path.

        Args:
            nodes: Steps and an optional trailing deferred marker.
            forks: Positions of the steps opening a fork group.
        """
        super().__init__(nodes)
        self.forks = set(forks)

    def fork(self) -> 'Path':
        """Copy the path for walking an alternative continuation."""
        return type(self)(self, self.forks)

    def is_fork(self, index: int) -> bool:
        """Whether the step at `index` opens a fork group."""
        return index in self.forks

    @property
    def steps(self) -> list[Step]:
        """Steps of the path without the deferred marker."""
        return [node for node in self if isinstance(node, Step)]

    @property
    def deferred(self) -> Deferred | None:
        """Deferred marker closing the path, if any."""
        if self and isinstance(self[-1], Deferred):
            return self[-1]
        return None

    @property
    def steps_description(self) -> str:
        """Joined step descriptions, matched by path filters.

        The anonymous whole-body step has an empty description.
        """
        steps = self.steps
        if steps and steps[0].description == BODY_DESCRIPTION:
            return ''

        return PATH_SEPARATOR.join(step.description for step in steps)

    @property
    def description(self) -> str:
        """Human-readable description used for reporting.

        A deferred path ends with the deferred marker.
        """
        parts = []
        if steps_description := self.steps_description:
            parts.append(steps_description)

        if (deferred := self.deferred) is not None:
            marker = DEFERRED_MARKER
            if deferred.description:
                marker = f'{deferred.description} {marker}'
            parts.append(marker)

        return PATH_SEPARATOR.join(parts)


def _walk(nodes: 'Sequence[Node]', path: Path, paths: list[Path], *,
          fork_entry: bool = False) -> None:
    """Walk a sequence of nodes, emitting complete paths.

    Args:
        nodes: Normalized sequence to walk.
        path: Path accumulated so far; extended in place by steps.
        paths: Output list of complete paths.
        fork_entry: Whether the next appended step opens a fork group.
    """
    for position, node in enumerate(nodes):
        if isinstance(node, Deferred):
            path.append(node)
            paths.append(path)
            return

        if isinstance(node, Fork):
            _walk(node.nodes, path.fork(), paths, fork_entry=True)
            continue

        if fork_entry:
            path.forks.add(len(path))
            fork_entry = False

        path.append(node)

        if node.next:
            _walk((*node.next, *nodes[position + 1:]), path, paths)
            return

    if nodes and isinstance(nodes[-1], Step):
        paths.append(path)


def enumerate_paths(spec: 'Spec') -> list[Path]:
    """Enumerate every linear path of a step specification.

    The function is pure: enumerating the same specification twice yields
    equal paths, and no two paths share the same list object.

    Args:
        spec: Step specification (a step, a deferred marker, a nested
            sequence) or `None` for a wholly deferred story.

    Returns:
        Ordered list of paths. Empty for an empty or absent specification.

    Raises:
        StoryBuildError: If the specification contains invalid elements.
    """
    nodes = build_spec(spec)
    if not nodes:
        return []

    paths: list[Path] = []
    _walk(nodes, Path(), paths)

    return paths
