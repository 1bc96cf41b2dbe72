"""
Notification queues - hand committed engagement events to the dispatcher.

BackgroundTasksQueue runs dispatch in-process after the response is sent,
ArqQueue hands it to the Redis worker, InlineQueue runs it immediately.
"""

import logging
from typing import Optional, Protocol

from fastapi import BackgroundTasks, Request

from .dispatcher import NotificationDispatcher
from .events import EngagementEvent

logger = logging.getLogger(__name__)


class NotificationQueue(Protocol):
    async def enqueue(self, event: EngagementEvent) -> None: ...


async def run_dispatch(dispatcher: NotificationDispatcher, event: EngagementEvent) -> None:
    """Dispatch one event; failures are logged, never raised"""
    try:
        await dispatcher.dispatch(event)
    except Exception:
        logger.exception(f"❌ Notification dispatch crashed for {event.kind} ({event.entity_id})")


class BackgroundTasksQueue:
    def __init__(self, background_tasks: BackgroundTasks, dispatcher: NotificationDispatcher):
        self.background_tasks = background_tasks
        self.dispatcher = dispatcher

    async def enqueue(self, event: EngagementEvent) -> None:
        self.background_tasks.add_task(run_dispatch, self.dispatcher, event)


class ArqQueue:
    def __init__(self, pool):
        self.pool = pool

    async def enqueue(self, event: EngagementEvent) -> None:
        try:
            await self.pool.enqueue_job("dispatch_notification_task", event.model_dump(mode="json"))
            logger.info(f"📤 Queued {event.kind} notification for {event.entity_id}")
        except Exception as e:
            logger.error(f"❌ Failed to enqueue {event.kind} notification for {event.entity_id}: {e}")


class InlineQueue:
    """Dispatches immediately and remembers what it saw"""

    def __init__(self, dispatcher: Optional[NotificationDispatcher] = None):
        self.dispatcher = dispatcher
        self.events: list[EngagementEvent] = []

    async def enqueue(self, event: EngagementEvent) -> None:
        self.events.append(event)
        if self.dispatcher is not None:
            await run_dispatch(self.dispatcher, event)


def get_notification_queue(request: Request, background_tasks: BackgroundTasks) -> NotificationQueue:
    """Dependency injection for the configured NotificationQueue"""
    state = request.app.state
    queue = getattr(state, "notification_queue", None)
    if queue is not None:
        return queue
    arq_pool = getattr(state, "arq_pool", None)
    if arq_pool is not None:
        return ArqQueue(arq_pool)
    return BackgroundTasksQueue(background_tasks, state.dispatcher)
