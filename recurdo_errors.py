"""
Fatal error types. None of these are retried: each one means the data in
Todoist (or the local configuration) needs a human to fix it.
"""


class RecurdoError(Exception):
    """Base class for every fatal recurdo error"""
    exit_code = 1


class ConfigError(RecurdoError):
    """Missing or malformed local configuration (token, cutoff period)"""
    exit_code = 2


class RecurrenceConfigError(RecurdoError):
    """A recur_ label whose name does not encode a usable period"""

    def __init__(self, label_name, reason):
        self.label_name = label_name
        self.reason = reason
        super().__init__(f"Bad label name {label_name}: {reason}")


class RecurrenceValidationError(RecurdoError):
    """A labeled subtree breaks one of the structural rules"""

    def __init__(self, result):
        self.result = result
        super().__init__(result.error)


class ConvergenceError(RecurdoError):
    """The pass loop hit its configured ceiling without settling"""
