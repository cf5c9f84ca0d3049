"""Status enums for installation progress."""

from enum import Enum


class Phase(str, Enum):
    """Lifecycle phase shared by stages and products.

    Product transitions:
    none → inProgress → awaitingComponents → completed
              ↓                ↓
            failed ←───────────

    A stage is completed only when every product in it is completed.
    """

    NONE = ""
    IN_PROGRESS = "in progress"
    COMPLETED = "completed"
    FAILED = "failed"
    AWAITING_COMPONENTS = "awaiting components"


class PreflightStatus(str, Enum):
    """Preflight gate state.

    State transitions:
    notStarted → inProgress → successful
                     ↓    ↑
                    failed
    """

    NOT_STARTED = ""
    IN_PROGRESS = "in progress"
    SUCCESS = "successful"
    FAIL = "failed"
