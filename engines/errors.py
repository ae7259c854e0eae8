"""
Engine Errors

Caller errors raised by the calculation and compliance engines.

Non-compliance is never an exception: validators return it as data.
Only malformed input ends up here.
"""


class LaborEngineError(ValueError):
    """Base class for malformed input passed to the engines."""


class InvalidTimeRangeError(LaborEngineError):
    """An interval ends before it starts, or a break falls outside its shift."""


class MissingTimestampError(LaborEngineError):
    """A timestamp required by the calculation is absent."""


class MissingIdentifierError(LaborEngineError):
    """A required identifier (employee id, state code) is blank."""


class UnknownCategoryError(LaborEngineError):
    """An enum-like value is not recognized."""


class InvalidStatusTransitionError(LaborEngineError):
    """A time entry status change is not allowed by the approval workflow."""


class PolicyNotFoundError(LaborEngineError):
    """No policy of the requested type is effective for the shift date."""
