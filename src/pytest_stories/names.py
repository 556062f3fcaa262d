"""Reserved names, markers and description types of the story DSL.

The markers defined here are part of the public contract: they appear in
path descriptions, console output and persisted transcripts, and are
relied upon by filters written by test authors.
"""

from typing import Annotated

from pydantic import Field

#: Description of the anonymous step wrapping a whole-body story.
BODY_DESCRIPTION = '$body$'

#: Marker closing the description of an intentionally incomplete path.
DEFERRED_MARKER = '### deferred ###'

#: Separator between step descriptions in a human-readable path description.
PATH_SEPARATOR = ' > '

#: Separator between step descriptions in a transcript deduplication prefix.
PREFIX_SEPARATOR = '>'

#: Suffix appended to a topic description to name its transcript.
TRANSCRIPT_SUFFIX = ' (stories)'


Description = Annotated[
    str, Field(
        min_length=1,
        title='Description',
        description=(
            'Human-readable description of a topic, story or step. '
            'Step descriptions form path descriptions and transcript '
            'prefixes, so they should be unique among siblings.'
        ),
        examples=[
            'create a user',
            'login as admin',
        ],
    ),
]
