"""Pub/sub timeline: records a history of everything instrumented entities do."""

from .events import DestroyEvent, LifecycleNotification, PublishEvent, SubscribeEvent
from .instrumented import TimelinePublisher, TimelineSubscriber
from .manager import GLOBAL_MANAGER_ID, PubSubManager, get_manager, set_manager

__all__ = [
    "DestroyEvent",
    "GLOBAL_MANAGER_ID",
    "LifecycleNotification",
    "PubSubManager",
    "PublishEvent",
    "SubscribeEvent",
    "TimelinePublisher",
    "TimelineSubscriber",
    "get_manager",
    "set_manager",
]
