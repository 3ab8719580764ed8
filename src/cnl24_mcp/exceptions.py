"""Errors raised while building pump request envelopes."""


class ChecksumError(Exception):
    """Raised when an envelope checksum cannot be computed."""
    pass


class EncryptionError(Exception):
    """Raised when the session cipher cannot encrypt a sub-message.

    Retrying with the same key material will not help; the session's
    key and IV should be treated as invalid.
    """
    pass
