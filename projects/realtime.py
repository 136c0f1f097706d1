# projects/realtime.py
"""
In-process realtime channel.

Publishers push row-insert events on a topic ("project:<id>:messages",
"version:<id>:comments"); subscribers receive them through a Django signal
filtered by topic. A subscriber that raises is logged and skipped so one bad
handler never breaks the write that published the event.
"""
import logging

from django.dispatch import Signal

logger = logging.getLogger("vcollab.realtime")

realtime_event = Signal()


def messages_topic(project_id) -> str:
    return f"project:{project_id}:messages"


def comments_topic(version_id) -> str:
    return f"version:{version_id}:comments"


class Subscription:
    def __init__(self, channel, topic, receiver):
        self.channel = channel
        self.topic = topic
        self._receiver = receiver
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.channel.signal.disconnect(self._receiver)
            self.active = False


class RealtimeChannel:
    def __init__(self, signal=None):
        self.signal = signal or realtime_event

    def publish(self, topic: str, event: dict) -> int:
        """
        Deliver `event` to every subscriber of `topic`.

        Returns the number of handlers that received it.
        """
        results = self.signal.send_robust(sender=self.__class__, topic=topic, event=event)
        delivered = 0
        for receiver, result in results:
            if isinstance(result, Exception):
                logger.warning(f"Realtime handler failed on {topic}: {result}")
            elif result:
                delivered += 1
        return delivered

    def subscribe(self, topic: str, handler) -> Subscription:
        def receiver(sender, topic=None, event=None, **kwargs):
            if topic != subscription.topic:
                return False
            handler(event)
            return True

        subscription = Subscription(self, topic, receiver)
        # Strong reference: the closure would otherwise be collected immediately
        self.signal.connect(receiver, weak=False)
        return subscription


channel = RealtimeChannel()
