class QueuepeekError(Exception):
    """Base class for errors raised by queuepeek."""


class ConfigError(QueuepeekError):
    """Bad config file, bad command line argument or unmatched selector."""


class DecodeError(QueuepeekError):
    """A stored value could not be decoded into a record."""
