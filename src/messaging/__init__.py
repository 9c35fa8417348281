"""In-process publish/subscribe primitive.

Publishers deliver named notifications synchronously to the subscriptions
registered for that name. Subscribers own their subscription records.
"""

from .errors import MessagingError, PublisherDestroyedError, SubscriberDestroyedError
from .models import Handler, Subscription
from .publisher import Publisher
from .subscriber import Subscriber

__all__ = [
    "Handler",
    "MessagingError",
    "Publisher",
    "PublisherDestroyedError",
    "Subscriber",
    "SubscriberDestroyedError",
    "Subscription",
]
