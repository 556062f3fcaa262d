"""Transcript persistence.

Each topic transcript is written as an indented JSON document named
after the topic description. An index document lists all written
transcripts together with the revision of the API under test.
"""

from json import dumps
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pytest_stories.schema import Transcript

#: Name of the index document.
INDEX_FILENAME = 'index2.json'

JSON_INDENT = 4


class TranscriptWriter:
    """Writes transcripts and their index into a directory."""

    def __init__(self, directory: Path | str) -> None:
        """Initialize a writer.

        Args:
            directory: Output directory, created on first write.
        """
        self.directory = Path(directory)
        self.entries: list[dict[str, str]] = []

    @staticmethod
    def filename(transcript: 'Transcript') -> str:
        """Build the file name of a transcript."""
        name = transcript.description.replace(' ', '_').replace('/', '_')
        return f'{Path(name).name}.json'

    def _dump(self, filename: str, content: Any) -> Path:  # noqa: ANN401
        """Write a JSON document."""
        self.directory.mkdir(parents=True, exist_ok=True)

        target = self.directory / filename
        with target.open('wt', encoding='utf-8') as output:
            output.write(dumps(content, ensure_ascii=False, indent=JSON_INDENT))
            output.write('\n')

        return target

    def write(self, transcript: 'Transcript') -> Path:
        """Write a transcript and remember it for the index.

        Returns:
            Path of the written document.
        """
        filename = self.filename(transcript)
        target = self._dump(filename, transcript.dump())

        self.entries.append({'desc': transcript.description, 'file': filename})

        return target

    def write_index(self, commit: str | None = None) -> Path:
        """Write the index of all transcripts written so far.

        Returns:
            Path of the index document.
        """
        return self._dump(INDEX_FILENAME, {
            'commit': commit,
            'transcripts': self.entries,
        })
