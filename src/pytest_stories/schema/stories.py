"""Topics, stories and path hooks.

Topics and stories are built once at declaration time by the DSL builders
and never change afterwards. A story owns a normalized step specification
or no specification at all, which marks the story as wholly deferred.
"""

from typing import TYPE_CHECKING

from pydantic import Field

from pytest_stories.models import SchemaModel
from pytest_stories.names import Description  # noqa: TC001
from pytest_stories.schema.drivers import DriverAction  # noqa: TC001
from pytest_stories.schema.nodes import Node  # noqa: TC001

if TYPE_CHECKING:
    from pytest_stories.core.paths import Path


class PathHooks(SchemaModel):
    """Pair of hooks wrapped around every executed path."""

    before: DriverAction | None = Field(
        default=None,
        title='Before hook',
        description='Callable invoked with the path driver before the first step.',
    )

    after: DriverAction | None = Field(
        default=None,
        title='After hook',
        description='Callable invoked with the path driver after the last step.',
    )


class Story(SchemaModel):
    """One test scenario described as a step specification."""

    description: Description

    spec: tuple[Node, ...] | None = Field(
        default=None,
        title='Step specification',
        description=(
            'Normalized ordered sequence of nodes. '
            'An absent specification marks the story as wholly deferred.'
        ),
    )

    @property
    def deferred(self) -> bool:
        """Whether the story has no specification at all."""
        return self.spec is None

    def paths(self) -> list['Path']:
        """Enumerate every linear path through the story."""
        from pytest_stories.core.paths import enumerate_paths  # noqa: PLC0415

        return enumerate_paths(self.spec)


class Topic(PathHooks):
    """Named, ordered grouping of stories with topic-scoped hooks."""

    description: Description

    stories: tuple[Story, ...] = Field(
        default=(),
        title='Stories',
        description='Stories of the topic in declaration order.',
    )
