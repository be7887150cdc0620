# scrambler/errors.py


class ScramblerError(Exception):
    pass


class MalformedGeometryError(ScramblerError):
    """
    The client-declared rendering geometry (or the reported point) cannot be
    used for hit-testing at all: empty width rows, non-finite numbers, a row
    count that does not match the grid, and so on.

    This is a caller contract violation, distinct from a pointer that simply
    missed every key.
    """
    pass


class StoreError(ScramblerError):
    """A backing store (sessions or credentials) failed."""
    pass


class SessionStoreError(StoreError):
    pass


class CredentialStoreError(StoreError):
    pass
