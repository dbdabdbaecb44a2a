from collections import deque
from typing import NamedTuple

from paymock.models.errors import ApiError


class QueuedError(NamedTuple):
    handler_name: str
    error: ApiError


class ErrorQueue:
    """
    FIFO of scripted failures.

    Only the head of the queue can intercept a call: if the head targets a
    different handler, nothing fires, even when a later entry would match.
    Scripted errors therefore fire in exactly the order they were enqueued.
    """

    def __init__(self):
        self._queue: deque[QueuedError] = deque()

    def enqueue(self, handler_name: str, error: ApiError) -> None:
        self._queue.append(QueuedError(handler_name, error))

    def dequeue(self) -> QueuedError | None:
        if not self._queue:
            return None
        return self._queue.popleft()

    def error_for_handler(self, handler_name: str) -> ApiError | None:
        """Peek at the head without consuming it."""
        if self._queue and self._queue[0].handler_name == handler_name:
            return self._queue[0].error
        return None

    def pending(self) -> list[QueuedError]:
        return list(self._queue)

    def clear(self) -> None:
        self._queue.clear()

    def __len__(self) -> int:
        return len(self._queue)
