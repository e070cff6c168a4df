class RelayError(Exception):
    """Base class for errors raised by the relay."""


class StorageError(RelayError):
    """A message store operation failed at the database."""


class ProtocolError(RelayError):
    """An inbound frame could not be accepted."""
