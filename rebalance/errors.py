# rebalance/errors.py


class BalanceError(Exception):
    """Base class for every error raised by the balance computations."""


class ConfigError(BalanceError, ValueError):
    """Invalid parameters, e.g. a month of 13 or a negative window size."""


class AlignmentError(BalanceError, ValueError):
    """Charts do not overlap in time, or overlap by a single month only."""


class EmptyInputError(BalanceError, ValueError):
    """No price development was given."""


class TooShortError(BalanceError, ValueError):
    """Price developments are too short to simulate a single month."""


class EvaluationError(BalanceError, ValueError):
    """A payment expression could not be parsed or evaluated."""


class NotFoundError(BalanceError, LookupError):
    """A search did not have any candidate to choose from."""
