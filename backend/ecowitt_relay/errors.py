"""
Relay Errors
============

Exceptions raised inside the relay. Field-level problems never raise; they are
logged and the field is skipped. Everything here is request-level or fatal.
"""


class RelayError(Exception):
    """Base class for all relay errors."""


class ReportDecodeError(RelayError):
    """The report body is not a valid URL-encoded form."""


class MetricRegistrationError(RelayError):
    """
    A metric could not be registered and no compatible instance exists.

    This is treated as an invariant violation: the process is terminated.
    """


class ConfigError(RelayError):
    """Invalid settings, CLI flags or config file."""
