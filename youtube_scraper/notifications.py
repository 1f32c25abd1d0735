"""Outbound notifications emitted while an ingestion run progresses."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)

PROGRESS_UPDATE = "progressUpdate"
UPDATE_UI = "updateUI"


def progress_message(processed_count: int) -> Dict[str, Any]:
    return {"action": PROGRESS_UPDATE, "processedCount": processed_count}


def results_message(results: Dict[str, Any]) -> Dict[str, Any]:
    return {"action": UPDATE_UI, "results": results}


def error_message(error: str) -> Dict[str, Any]:
    return {"action": UPDATE_UI, "error": error}


class Notifier(Protocol):
    """Fire-and-forget channel towards the display layer."""

    async def send(self, message: Dict[str, Any]) -> None:
        ...


class LoggingNotifier(Notifier):
    """Writes every notification to the log."""

    async def send(self, message: Dict[str, Any]) -> None:
        logger.info(f"Notification: {message}")


class QueueNotifier(Notifier):
    """Puts notifications on an asyncio queue for an in-process consumer."""

    def __init__(self, queue: Optional[asyncio.Queue] = None):
        self.queue: asyncio.Queue = queue if queue is not None else asyncio.Queue()

    async def send(self, message: Dict[str, Any]) -> None:
        self.queue.put_nowait(message)

    def drain(self) -> List[Dict[str, Any]]:
        """Remove and return every queued message."""
        messages = []
        while not self.queue.empty():
            messages.append(self.queue.get_nowait())
        return messages


async def notify_safely(notifier: Optional[Notifier], message: Dict[str, Any]) -> None:
    """Send ``message`` without letting a broken channel fail the caller."""
    if notifier is None:
        return
    try:
        await notifier.send(message)
    except Exception as e:
        logger.warning(f"Failed to deliver {message.get('action')} notification: {e}")
