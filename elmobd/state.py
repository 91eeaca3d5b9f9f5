"""
Connection state and its notification channel.

Observers either register a plain callback (called synchronously, in
transition order) or iterate a subscription. Consecutive duplicate states are
dropped; nothing else is coalesced.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING_TO_ADAPTER = "connectingToAdapter"
    CONNECTED_TO_ADAPTER = "connectedToAdapter"
    INITIALIZING_VEHICLE = "initializingVehicle"
    CONNECTED_TO_VEHICLE = "connectedToVehicle"


StateListener = Callable[[ConnectionState, ConnectionState], None]


class StateSubscription:
    """Async iterator over state transitions, registered at creation time."""

    def __init__(self, channel: "StateChannel", *, include_current: bool = True):
        self._channel = channel
        self._queue: "asyncio.Queue[Optional[ConnectionState]]" = asyncio.Queue()
        self._closed = False
        if include_current:
            self._queue.put_nowait(channel.state)

    def _push(self, state: ConnectionState) -> None:
        if not self._closed:
            self._queue.put_nowait(state)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel._unsubscribe(self)
        self._queue.put_nowait(None)

    def __aiter__(self) -> "StateSubscription":
        return self

    async def __anext__(self) -> ConnectionState:
        state = await self._queue.get()
        if state is None:
            raise StopAsyncIteration
        return state

    async def __aenter__(self) -> "StateSubscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class StateChannel:
    def __init__(self, initial: ConnectionState = ConnectionState.DISCONNECTED):
        self._state = initial
        self._listeners: List[StateListener] = []
        self._subscriptions: List[StateSubscription] = []
        self.history: List[ConnectionState] = [initial]

    @property
    def state(self) -> ConnectionState:
        return self._state

    def publish(self, state: ConnectionState) -> bool:
        """Record a transition. Returns False when it repeats the current state."""
        if state == self._state:
            return False
        old, self._state = self._state, state
        self.history.append(state)
        logger.debug("connection state %s -> %s", old.value, state.value)
        for sub in list(self._subscriptions):
            sub._push(state)
        for listener in list(self._listeners):
            listener(old, state)
        return True

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def subscribe(self, *, include_current: bool = True) -> StateSubscription:
        sub = StateSubscription(self, include_current=include_current)
        self._subscriptions.append(sub)
        return sub

    def _unsubscribe(self, sub: StateSubscription) -> None:
        try:
            self._subscriptions.remove(sub)
        except ValueError:
            pass

    def close(self) -> None:
        for sub in list(self._subscriptions):
            sub.close()
