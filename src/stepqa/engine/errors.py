"""StepQA error taxonomy.

Every handler failure reaches the interpreter as a ``StepFailedError`` that
carries the originating step index and action.  Ambiguity is never raised:
it is resolved by the first-visible tie-break.
"""

from __future__ import annotations


class StepQAError(Exception):
    """Base class for all StepQA engine errors."""

    pass


class NotFoundError(StepQAError):
    """A selector, table, row, column or option could not be resolved."""

    pass


class TableNotFoundError(NotFoundError):
    pass


class RowNotFoundError(NotFoundError):
    pass


class ColumnNotFoundError(NotFoundError):
    pass


class OptionNotFoundError(NotFoundError):
    pass


class InvalidStepError(StepQAError):
    """A required field is missing or invalid for the given action."""

    pass


class UnknownActionError(StepQAError):
    """The step's action tag is not part of the vocabulary."""

    def __init__(self, action: str) -> None:
        super().__init__(f"Unknown action: {action!r}")
        self.action = action


class AssertionFailedError(StepQAError):
    """Expected vs. actual mismatch."""

    def __init__(self, message: str, expected: str = "", actual: str = "") -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ExternalTimeoutError(StepQAError):
    """An automation call exceeded its own timeout."""

    pass


class CaptchaError(StepQAError):
    """Captcha recognition is unavailable or produced no text."""

    pass


class BatchItemError(StepQAError):
    """One item of a batch form operation failed; later items were not attempted."""

    def __init__(self, index: int, target: str, cause: Exception) -> None:
        super().__init__(f"Item {index} ({target}) failed: {cause}")
        self.index = index
        self.target = target
        self.cause = cause


class StepFailedError(StepQAError):
    """Wraps a handler failure with the step that raised it."""

    def __init__(self, step_index: int, action: str, cause: Exception) -> None:
        super().__init__(f"Step [{step_index}] {action} failed: {type(cause).__name__}: {cause}")
        self.step_index = step_index
        self.action = action
        self.cause = cause
