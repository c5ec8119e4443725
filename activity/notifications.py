import logging
from collections import deque


class MessageLog:
    """
    In-process notification sink: logs every message and keeps the latest ones.

    Parameters
    ----------
    logger : logging.Logger
        Logger instance
    capacity : int
        Number of messages kept
    """

    def __init__(self, logger: logging.Logger, capacity: int = 100):
        self.logger = logger
        self._messages: deque[str] = deque(maxlen=capacity)

    def add_success(self, message: str) -> None:
        self.logger.info(f"Notification: {message}")
        self._messages.append(message)

    def messages(self) -> list[str]:
        return list(self._messages)
