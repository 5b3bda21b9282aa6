"""Custom exception hierarchy for ballstats.

Exception tree:
    BallAppError
    +-- NotFound              (missing match / profile / team id)
    +-- ValidationRejected    (illegal event sequence or status change)
    |   +-- EventRejected
    |   +-- TransitionRejected
    |   +-- RosterLocked
    +-- StorageFailure        (document store operation failed)
    +-- LocalWriteError       (media write to local disk failed)
"""

from typing import Optional


class BallAppError(Exception):
    """Base exception for all ballstats errors."""

    def __init__(
        self,
        message: str,
        *,
        collection: Optional[str] = None,
        doc_id: Optional[str] = None,
    ):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(message)


class NotFound(BallAppError):
    """The requested document does not exist in its collection."""

    pass


class ValidationRejected(BallAppError):
    """An operation was refused by the match rules.

    Raised before anything is written -- the match passed in is unchanged
    and the store was not contacted.
    """

    pass


class EventRejected(ValidationRejected):
    """The event type may not be appended to the current event log."""

    pass


class TransitionRejected(ValidationRejected):
    """The requested match status change is not allowed."""

    pass


class RosterLocked(ValidationRejected):
    """Rosters can only change before the match has started."""

    pass


class StorageFailure(BallAppError):
    """The document store failed to complete an operation.

    Not retried -- the user re-triggers the action.
    """

    pass


class LocalWriteError(BallAppError):
    """Writing media bytes to local storage failed."""

    pass
