"""Exceptions raised by proctime."""


class ProcTimeError(Exception):
    """Base class for proctime errors."""


class EnumerationError(ProcTimeError):
    """The running-process list could not be read."""
