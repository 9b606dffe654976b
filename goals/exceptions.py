# goals/exceptions.py


class SalesBoardError(Exception):
    """Base class for store and rollover failures."""


class StoreReadError(SalesBoardError):
    """A query against the event store failed; live views are stale."""


class StoreWriteError(SalesBoardError):
    """An append, update or batch write failed; atomic batches left nothing behind."""


class RolloverAbortedError(StoreWriteError):
    """The weekly record could not be persisted; live projects were not touched."""
