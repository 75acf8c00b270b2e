"""
Events
======

Typed notifications and a small publish/subscribe bus.

The game emits each occurrence exactly once, after the tick phase that
caused it. Presentation layers (audio, particles, UI) subscribe by event
type and never reach into the simulation.

Usage:
    bus = EventBus()
    unsubscribe = bus.subscribe(FishCaught, lambda e: print(e.points))
    ...
    unsubscribe()
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")


@dataclass
class Event:
    """Base class for all events. time is session seconds elapsed."""
    time: float = 0.0


@dataclass
class FishCaught(Event):
    """A hooked fish was reeled all the way in and scored."""
    uid: int = 0
    kind: str = ""
    points: int = 0
    combo: int = 0
    is_fast: bool = False
    is_perfect: bool = False


@dataclass
class FishHooked(Event):
    """A fish bit the hook; it is scored once reeled in."""
    uid: int = 0
    kind: str = ""
    will_try_escape: bool = False


@dataclass
class FishEscaped(Event):
    """A hooked fish broke free."""
    uid: int = 0
    kind: str = ""


@dataclass
class ObstacleHit(Event):
    uid: int = 0
    kind: str = ""
    penalty: int = 0        # Points actually deducted (<= 0)
    destroyed: bool = False


@dataclass
class PowerUpCollected(Event):
    uid: int = 0
    kind: str = ""
    effect: str = ""
    points: int = 0


@dataclass
class BuffExpired(Event):
    effect: str = ""


@dataclass
class ComboChanged(Event):
    old: int = 0
    new: int = 0
    reason: str = ""        # "catch", "obstacle" or "timeout"


@dataclass
class AchievementUnlocked(Event):
    achievement_id: str = ""
    bonus: int = 0


@dataclass
class HighScoreBeaten(Event):
    score: int = 0
    previous: int = 0


@dataclass
class DifficultyChanged(Event):
    level: int = 1


@dataclass
class SpawnEventStarted(Event):
    name: str = ""


@dataclass
class SpawnEventEnded(Event):
    name: str = ""


@dataclass
class GameEnded(Event):
    reason: str = ""
    record: Dict[str, Any] = field(default_factory=dict)


class EventBus:
    """
    Routes events to subscribers registered for their exact type.

    Subscribers are called synchronously in subscription order. A failing
    subscriber is logged and the remaining subscribers still run.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[Type[Event], List[Callable[[Any], None]]] = {}
        self._emitted: Counter = Counter()
        self._history: Optional[List[Event]] = None

    def subscribe(self, event_type: Type[E], callback: Callable[[E], None]) -> Callable[[], None]:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: The event class to listen for.
            callback: Called with each emitted event.

        Returns:
            Function that removes the subscription.
        """
        self._subscribers.setdefault(event_type, []).append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers.get(event_type, []):
                self._subscribers[event_type].remove(callback)

        return unsubscribe

    def emit(self, event: Event) -> None:
        event_type = type(event)
        self._emitted[event_type.__name__] += 1
        if self._history is not None:
            self._history.append(event)

        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(event)
            except Exception as e:
                logger.error("Error in subscriber for %s: %s", event_type.__name__, e, exc_info=True)

    def record(self, enabled: bool = True) -> None:
        """Keep (or stop keeping) a list of every emitted event."""
        self._history = [] if enabled else None

    @property
    def history(self) -> List[Event]:
        return list(self._history or [])

    def subscriber_count(self, event_type: Type[Event]) -> int:
        return len(self._subscribers.get(event_type, []))

    def clear(self) -> None:
        """Remove all subscribers."""
        self._subscribers.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_emits": sum(self._emitted.values()),
            "emits_by_type": dict(self._emitted),
            "subscribers": {t.__name__: len(s) for t, s in self._subscribers.items()},
        }
