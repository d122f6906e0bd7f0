"""Status reporters - sinks for human-readable progress and error messages."""
import logging
from typing import List, Optional, Tuple

from ..models import StatusColor

logger = logging.getLogger(__name__)


class LoggingStatusReporter:
    """
    Reporter that writes status messages to a logger.

    Implements IStatusReporter protocol. Error-colored messages go out at
    ERROR level, everything else at INFO. Hiding is a no-op beyond
    remembering visibility.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger
        self.visible = False
        self.history: List[Tuple[str, StatusColor]] = []

    def report(self, message: str, visible: bool = True, color: StatusColor = StatusColor.NEUTRAL) -> None:
        self.visible = visible
        if not visible:
            return
        self.history.append((message, color))
        if color is StatusColor.ERROR:
            self._log.error(message)
        else:
            self._log.info(message)

    @property
    def last_message(self) -> Optional[str]:
        if not self.history:
            return None
        return self.history[-1][0]
