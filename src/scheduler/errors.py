"""Exceptions raised by the scheduled session engine."""


class SchedulerError(Exception):
    """Base class for scheduled session errors."""


class ValidationError(SchedulerError, ValueError):
    """Input was rejected before anything was persisted."""


class NotFoundError(SchedulerError, LookupError):
    """The requested scheduled session does not exist for this owner.

    Not raised inside this package: lookups report a missing session as
    ``False`` or ``None``.  Callers that need an exception raise it themselves.
    """


class StoreError(SchedulerError):
    """The persistence layer failed."""
