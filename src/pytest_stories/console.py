"""Console reporting of command-line runs."""

from traceback import format_exception
from typing import TYPE_CHECKING

from click import echo

if TYPE_CHECKING:
    from pytest_stories.core import RunSummary
    from pytest_stories.schema import ExpectationResults, Story, Topic

COLUMNS = 80


class ConsoleReporter:
    """Prints topics, stories and path outcomes as a run progresses.

    Every method matches one of the run callbacks, so a reporter can be
    handed to `run_topics` as `on_topic`, `on_story` and `on_path`.
    """

    def __init__(self, width: int = COLUMNS) -> None:
        """Initialize a reporter.

        Args:
            width: Width of titles and rules.
        """
        self.width = width
        self.failed = False

    def right(self, message: str) -> None:
        """Print a right-aligned line."""
        echo(message.rjust(self.width))

    def topic(self, topic: 'Topic') -> None:
        """Print a topic header."""
        echo()
        echo()
        self.right(topic.description)
        echo('-' * self.width)

    def story(self, story: 'Story') -> None:
        """Print a story title."""
        echo(story.description)

    @staticmethod
    def _details(error: BaseException | None, results: 'ExpectationResults | None') -> str:
        """Render the failure details of a path."""
        if error is not None:
            return ''.join(format_exception(error)).rstrip()

        if results is not None and isinstance(results.error, BaseException):
            return ''.join(format_exception(results.error)).rstrip()

        if results is not None and results.error is not None:
            return f'{results.error}'

        failed = results.failed if results is not None else 0
        return f'Expectations failed: {failed}'

    def path(self, error: BaseException | None, description: str,
             results: 'ExpectationResults | None') -> None:
        """Print the outcome of a path.

        A call without error and results reports a wholly deferred story.
        """
        if error is None and results is None:
            echo('  #### deferred ####')
            return

        if error is not None or (results is not None and not results.ok):
            self.failed = True
            echo(f'  XX: {description}')
            echo()
            echo(self._details(error, results))
            echo()
            return

        echo(f'  ok: {description}' if description else '  ok')

    def summary(self, summary: 'RunSummary') -> bool:
        """Print the closing lines of a run.

        Returns:
            Whether the run succeeded.
        """
        if summary.ok and not self.failed:
            self.right(f'Expectations Passed: {summary.passed}')
            self.right('ALL OK!')
            return True

        self.right(f'Expectations Failed: {summary.failed}')
        self.right('FAILED!')

        return False
