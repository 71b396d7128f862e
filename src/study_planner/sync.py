"""Sync status indicator for the last persistence or regeneration round trip."""
import logging
from typing import Optional

logger = logging.getLogger(__name__)

IDLE = "idle"
SAVING = "saving"
SAVED = "saved"
ERROR = "error"


class SyncStatusTracker:
    """idle -> saving -> saved | error, re-entering saving on the next round trip."""

    def __init__(self):
        self.status = IDLE
        self.last_error: Optional[str] = None

    def begin(self) -> None:
        self.status = SAVING
        self.last_error = None

    def succeed(self) -> None:
        self.status = SAVED

    def fail(self, message: str) -> None:
        self.status = ERROR
        self.last_error = message
        logger.warning("Sync failed: %s", message)

    def reset(self) -> None:
        self.status = IDLE
        self.last_error = None

    @property
    def is_busy(self) -> bool:
        return self.status == SAVING
