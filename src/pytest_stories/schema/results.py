"""Counted expectation results reported by drivers."""

from typing import Any

from pydantic import AliasChoices, ConfigDict, Field, NonNegativeInt

from pytest_stories.models import SchemaModel


class ExpectationResults(SchemaModel):
    """Counts of passed and failed expectations for one executed path.

    Drivers may return an instance of this model or any mapping with
    `passed`/`failed`/`error` keys (or the camel-case
    `expectationsPassed`/`expectationsFailed`/`err` spelling).
    """

    model_config = ConfigDict(extra='ignore')

    passed: NonNegativeInt = Field(
        default=0,
        validation_alias=AliasChoices('passed', 'expectationsPassed', 'expectations_passed'),
        title='Passed expectations',
    )

    failed: NonNegativeInt = Field(
        default=0,
        validation_alias=AliasChoices('failed', 'expectationsFailed', 'expectations_failed'),
        title='Failed expectations',
    )

    error: Any = Field(
        default=None,
        validation_alias=AliasChoices('error', 'err'),
        title='Failure detail',
        description='Exception or message describing the first failed expectation.',
    )

    @property
    def ok(self) -> bool:
        """Whether no expectation failed."""
        return self.failed == 0

    @classmethod
    def from_driver(cls, value: Any) -> 'ExpectationResults':  # noqa: ANN401
        """Validate results returned by a driver.

        Args:
            value: Results instance, mapping, or `None` for no expectations.

        Returns:
            Validated expectation results.
        """
        if value is None:
            return cls()

        if isinstance(value, cls):
            return value

        return cls.model_validate(value)
