"""Transcript recording.

A `TranscriptRecorder` follows the execution of one topic and builds its
transcript. Steps are deduplicated by their full prefix within each story:
a step reached again through a path sharing the same prefix is listed
only once, while the exchanges of the repeated invocation are still
captured by a detached record.

Drivers report exchanges through a `Scribe` bound to the record that is
open at the time. An exchange reserves its slot first and is filled
later through an `ActionHandle`, so the order of records always follows
the order in which exchanges were started.
"""

from collections.abc import Hashable, Mapping
from typing import TYPE_CHECKING, Any

from pytest_stories.errors import StoryError
from pytest_stories.names import PREFIX_SEPARATOR
from pytest_stories.schema import ActionLog, ActionRecord, ResponseRecord, StepRecord, StoryRecord, Transcript
from pytest_stories.values import snapshot

if TYPE_CHECKING:
    from pytest_stories.values import RuntimeValue


class ActionHandle:
    """Handle filling a reserved action slot."""

    def __init__(self, record: ActionRecord) -> None:
        """Initialize a handle for a reserved record."""
        self.record = record
        self.filled = False

    @staticmethod
    def _status_code(response: 'RuntimeValue') -> int | None:
        """Extract a status code from a response object or mapping."""
        if response is None:
            return None

        if isinstance(response, Mapping):
            status = response.get('status_code', response.get('statusCode'))
        else:
            status = getattr(response, 'status_code', None)

        return status if isinstance(status, int) else None

    def fill(self, actor: str | None, request: 'RuntimeValue',
             response: 'RuntimeValue' = None, body: 'RuntimeValue' = None) -> None:
        """Fill the reserved slot once the exchange completed.

        Request and body are copied at this moment, so later changes
        of the source objects do not alter the transcript.

        Args:
            actor: Name of the actor who performed the exchange.
            request: Request as sent.
            response: Response object or mapping with a status code.
            body: Response body.
        """
        self.record.actor = actor
        self.record.request = snapshot(request)
        self.record.response = ResponseRecord(
            status_code=self._status_code(response),
            body=snapshot(body),
        )
        self.filled = True

    __call__ = fill


class Scribe:
    """Recording facade handed to drivers while scribing is on."""

    def __init__(self, log: ActionLog) -> None:
        """Initialize a scribe writing into an action log."""
        self.log = log

    def deferred_request(self) -> ActionHandle:
        """Reserve the next action slot."""
        record = ActionRecord()
        self.log.actions.append(record)

        return ActionHandle(record)

    def doc(self, message: str) -> None:
        """Attach a note to the next action to be recorded."""
        position = len(self.log.actions)
        self.log.doc_strings.setdefault(position, []).append(message)


class TranscriptRecorder:
    """Builds the transcript of one topic.

    The engine drives the recorder with paired calls around each phase
    of a path: `before_all`, `before`, `path`, `step` (once per executed
    step) and their `end_*` counterparts.
    """

    def __init__(self, description: str) -> None:
        """Initialize a recorder for a topic transcript.

        Args:
            description: Description of the transcript.
        """
        self.transcript = Transcript(description=description)

        self.past_steps: dict[Hashable, set[str]] = {}
        self.current: ActionLog | None = None

        self._stories: dict[Hashable, StoryRecord] = {}
        self._story: StoryRecord | None = None
        self._seen: set[str] = set()
        self._prefix = ''
        self._depth = 0

    def before_all(self) -> None:
        """Open a detached scope for the global before hook."""
        self.current = ActionLog()

    def end_before_all(self) -> None:
        """Close the global before hook scope."""
        self.current = None

    def before(self) -> None:
        """Open a scope for the topic before hook.

        Only the first invocation is kept as the transcript setup; it is
        assumed to be identical for every path.
        """
        if self.transcript.setup is not None:
            self.current = ActionLog()
            return

        self.current = self.transcript.setup = ActionLog()

    def end_before(self) -> None:
        """Close the topic before hook scope."""
        self.current = None

    def story(self, description: str, *, key: Hashable | None = None) -> StoryRecord:
        """Open the record of a story, reusing it if already seen.

        Args:
            description: Story description.
            key: Identity of the story. Defaults to the description.

        Returns:
            The story record.
        """
        if key is None:
            key = description

        if (record := self._stories.get(key)) is None:
            record = self._stories[key] = StoryRecord(description=description)
            self.transcript.stories.append(record)

        self._story = record
        self._seen = self.past_steps.setdefault(key, set())

        return record

    def end_story(self) -> None:
        """Close the current story."""
        self._story = None

    def path(self) -> None:
        """Start recording a path of the current story."""
        if self._story is None:
            raise StoryError('No story is open')

        self._prefix = self._story.description
        self._depth = 0

    def end_path(self) -> None:
        """Finish recording a path."""
        self._prefix = ''
        self._depth = 0
        self.current = None

    def step(self, description: str, is_fork: bool = False) -> StepRecord:
        """Open the record of a step reached by the current path.

        Args:
            description: Step description.
            is_fork: Whether the step opens a fork group.

        Returns:
            The record receiving the step exchanges. It is listed in the
            story only when its prefix has not been seen before.
        """
        if self._story is None:
            raise StoryError('No story is open')

        record = StepRecord(
            description=description,
            depth=self._depth,
            is_fork=is_fork,
        )

        self._prefix += f'{PREFIX_SEPARATOR}{description}'
        self._depth += 1

        if self._prefix not in self._seen:
            self._seen.add(self._prefix)
            self._story.steps.append(record)

        self.current = record

        return record

    def end_step(self) -> None:
        """Close the current step."""
        self.current = None

    def scribe(self) -> Scribe:
        """Create a scribe for the currently open record.

        Raises:
            StoryError: If no scope is open.
        """
        if self.current is None:
            raise StoryError('Recording is not active')

        return Scribe(self.current)

    def dump(self) -> dict[str, Any]:
        """Dump the transcript into JSON-compatible primitives."""
        return self.transcript.dump()
