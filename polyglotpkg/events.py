import logging
from enum import Enum
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class Events(str, Enum):
    COMPILE_START = "compile:start"
    COMPILE_COMPLETE = "compile:complete"
    DEPENDENCIES_START = "dependencies:start"
    DEPENDENCIES_COMPLETE = "dependencies:complete"
    BUNDLE_START = "bundle:start"
    BUNDLE_COMPLETE = "bundle:complete"
    PACKAGE_FAILED = "package:failed"


class Subscription:
    def __init__(self, emitter: "LifecycleEmitter", event: Events, listener: Listener, once: bool):
        self._emitter = emitter
        self.event = event
        self.listener = listener
        self.once = once
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._emitter._discard(self)


class LifecycleEmitter:
    """Minimal synchronous event emitter for packaging progress."""

    def __init__(self) -> None:
        self._subscriptions: Dict[Events, List[Subscription]] = {}

    def on(self, event: Events, listener: Listener) -> Subscription:
        return self._subscribe(event, listener, once=False)

    def once(self, event: Events, listener: Listener) -> Subscription:
        return self._subscribe(event, listener, once=True)

    def off(self, event: Events, listener: Listener) -> None:
        for subscription in list(self._subscriptions.get(event, [])):
            if subscription.listener is listener:
                subscription.cancel()

    def emit(self, event: Events) -> None:
        logger.debug("Emitting %s", event.value)
        for subscription in list(self._subscriptions.get(event, [])):
            if not subscription.active:
                continue
            if subscription.once:
                subscription.cancel()
            subscription.listener()

    def listener_count(self, event: Events) -> int:
        return len(self._subscriptions.get(event, []))

    def clear_once_listeners(self) -> None:
        for subscriptions in self._subscriptions.values():
            for subscription in list(subscriptions):
                if subscription.once:
                    subscription.cancel()

    def _subscribe(self, event: Events, listener: Listener, *, once: bool) -> Subscription:
        subscription = Subscription(self, Events(event), listener, once)
        self._subscriptions.setdefault(subscription.event, []).append(subscription)
        return subscription

    def _discard(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.event, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
