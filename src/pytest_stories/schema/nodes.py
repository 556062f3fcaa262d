"""Step graph nodes.

A story is described by an ordered sequence of nodes. Each node is one of
three tagged variants:

- `Step`: a named unit of work invoked with the path driver;
- `Fork`: a nested sequence whose content restarts from the path state
  reached before it, instead of chaining with its siblings;
- `Deferred`: the path ends here and is intentionally incomplete.

Nodes are immutable values and can not contain themselves, so every
step graph is finite and acyclic.
"""

from typing import Literal

from pydantic import Field

from pytest_stories.models import SchemaModel
from pytest_stories.names import Description  # noqa: TC001
from pytest_stories.schema.drivers import DriverAction  # noqa: TC001


class Step(SchemaModel):
    """Named unit of work.

    A step proceeds to the next node of its enclosing sequence. A step
    built with continuations carries them in `next`; they are walked
    right after the step, before the remaining siblings.
    """

    #: Variant tag. Always `step` for steps.
    kind: Literal['step'] = 'step'

    description: Description

    action: DriverAction = Field(
        title='Step action',
        description=(
            'Callable invoked with the path driver. Exchanges performed '
            'by the driver during the call are attributed to this step.'
        ),
    )

    next: tuple['Node', ...] = Field(
        default=(),
        title='Continuations',
        description='Normalized continuation nodes walked right after this step.',
    )

    def __repr__(self) -> str:
        """Short representation."""
        return f'Step({self.description!r})'


class Deferred(SchemaModel):
    """Marker ending a path on purpose."""

    #: Variant tag. Always `deferred` for deferred markers.
    kind: Literal['deferred'] = 'deferred'

    description: str | None = Field(
        default=None,
        title='Deferred step description',
        description='Description of a step declared without an action.',
    )

    def __repr__(self) -> str:
        """Short representation."""
        if self.description:
            return f'Deferred({self.description!r})'
        return 'DEFERRED'


class Fork(SchemaModel):
    """Group of nodes continuing from the path state reached before it.

    Sibling fork groups are alternatives: each of them restarts from the
    same preceding path, and the first step reached inside a fork group
    is reported as a fork.
    """

    #: Variant tag. Always `fork` for fork groups.
    kind: Literal['fork'] = 'fork'

    nodes: tuple['Node', ...] = Field(
        default=(),
        title='Fork content',
        description='Normalized nested step specification.',
    )

    def __repr__(self) -> str:
        """Short representation."""
        return f'Fork({list(self.nodes)!r})'


#: Element of a normalized step specification.
Node = Step | Fork | Deferred

#: Shared anonymous deferred marker.
DEFERRED = Deferred()

Step.model_rebuild()
Fork.model_rebuild()
