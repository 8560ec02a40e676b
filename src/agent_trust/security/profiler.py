"""BehavioralProfiler — bounded message/action history and derived profiles.

The profiler keeps the most recent ``history_limit`` messages and actions
per entity and derives a :class:`BehavioralProfile` from them. Profiles are
built lazily and cached until :meth:`BehavioralProfiler.invalidate` is
called; storing new messages does not refresh a cached profile.
"""
from __future__ import annotations

import datetime
import math
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Iterable

from agent_trust.security.types import Action, Message

DEFAULT_HISTORY_LIMIT: int = 100
COMMON_PHRASE_COUNT: int = 10
PHRASE_LENGTH: int = 3


@dataclass
class BehavioralProfile:
    """Stylometric and activity summary of one entity.

    Parameters
    ----------
    entity_id:
        The entity this profile describes.
    typing_speed:
        Mean number of words per message.
    vocabulary_complexity:
        Distinct words divided by total words (0.5 with no messages).
    message_length_mean:
        Mean message length in characters.
    message_length_std:
        Population standard deviation of message length.
    active_hours:
        24-bucket histogram of message timestamps by UTC hour.
    common_phrases:
        Up to ten most frequent three-word phrases.
    interaction_patterns:
        Mapping of action type to observed count.
    """

    entity_id: str
    typing_speed: float = 0.0
    vocabulary_complexity: float = 0.5
    message_length_mean: float = 0.0
    message_length_std: float = 0.0
    active_hours: list[int] = field(default_factory=lambda: [0] * 24)
    common_phrases: list[str] = field(default_factory=list)
    interaction_patterns: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "entity_id": self.entity_id,
            "typing_speed": self.typing_speed,
            "vocabulary_complexity": self.vocabulary_complexity,
            "message_length": {
                "mean": self.message_length_mean,
                "std_dev": self.message_length_std,
            },
            "active_hours": list(self.active_hours),
            "common_phrases": list(self.common_phrases),
            "interaction_patterns": dict(self.interaction_patterns),
        }


class BehavioralProfiler:
    """Thread-safe per-entity message and action history.

    Parameters
    ----------
    history_limit:
        Number of messages and of actions retained per entity; the oldest
        entry is evicted first.
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if history_limit < 1:
            raise ValueError(f"history_limit must be positive, got {history_limit}")
        self._history_limit = history_limit
        self._messages: dict[str, deque[Message]] = {}
        self._actions: dict[str, deque[Action]] = {}
        self._profiles: dict[str, BehavioralProfile] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def store_message(self, message: Message) -> None:
        with self._lock:
            history = self._messages.setdefault(
                message.entity_id, deque(maxlen=self._history_limit)
            )
            history.append(message)

    def store_action(self, action: Action) -> None:
        with self._lock:
            history = self._actions.setdefault(
                action.entity_id, deque(maxlen=self._history_limit)
            )
            history.append(action)

    # ------------------------------------------------------------------
    # History access
    # ------------------------------------------------------------------

    def get_messages(self, entity_id: str) -> list[Message]:
        """Return stored messages for *entity_id*, oldest first."""
        with self._lock:
            return list(self._messages.get(entity_id, ()))

    def get_actions(self, entity_id: str) -> list[Action]:
        """Return stored actions for *entity_id*, oldest first."""
        with self._lock:
            return list(self._actions.get(entity_id, ()))

    def recent_actions(self, entities: Iterable[str], since: float) -> list[Action]:
        """Return actions of *entities* with a timestamp strictly after *since*.

        Parameters
        ----------
        entities:
            Entity IDs to collect actions for.
        since:
            Cutoff in epoch milliseconds.

        Returns
        -------
        list[Action]
            Actions grouped by entity in the order *entities* were given.
        """
        collected: list[Action] = []
        with self._lock:
            for entity_id in entities:
                collected.extend(
                    a for a in self._actions.get(entity_id, ()) if a.timestamp > since
                )
        return collected

    # ------------------------------------------------------------------
    # Profile generation
    # ------------------------------------------------------------------

    def build_profile(self, entity_id: str) -> BehavioralProfile:
        """Build a fresh profile from the current history of *entity_id*."""
        messages = self.get_messages(entity_id)
        actions = self.get_actions(entity_id)

        word_counts = [len(m.content.split(" ")) for m in messages]
        lengths = [len(m.content) for m in messages]
        typing_speed = sum(word_counts) / len(word_counts) if word_counts else 0.0
        mean_length = sum(lengths) / len(lengths) if lengths else 0.0
        variance = (
            sum((n - mean_length) ** 2 for n in lengths) / len(lengths) if lengths else 0.0
        )

        phrases: Counter[str] = Counter()
        all_words: list[str] = []
        hours = [0] * 24
        for message in messages:
            words = message.content.lower().split(" ")
            all_words.extend(w for w in words if w)
            for i in range(len(words) - PHRASE_LENGTH + 1):
                phrases[" ".join(words[i : i + PHRASE_LENGTH])] += 1
            hour = datetime.datetime.fromtimestamp(
                message.timestamp / 1000, tz=datetime.timezone.utc
            ).hour
            hours[hour] += 1

        complexity = len(set(all_words)) / len(all_words) if all_words else 0.5

        return BehavioralProfile(
            entity_id=entity_id,
            typing_speed=typing_speed,
            vocabulary_complexity=complexity,
            message_length_mean=mean_length,
            message_length_std=math.sqrt(variance),
            active_hours=hours,
            common_phrases=[p for p, _ in phrases.most_common(COMMON_PHRASE_COUNT)],
            interaction_patterns=dict(Counter(a.type for a in actions)),
        )

    def get_profile(self, entity_id: str) -> BehavioralProfile:
        """Return the cached profile for *entity_id*, building it on first use."""
        with self._lock:
            cached = self._profiles.get(entity_id)
        if cached is not None:
            return cached
        profile = self.build_profile(entity_id)
        with self._lock:
            return self._profiles.setdefault(entity_id, profile)

    def get_profiles(self, entities: Iterable[str]) -> list[BehavioralProfile]:
        return [self.get_profile(e) for e in entities]

    def invalidate(self, entity_id: str | None = None) -> None:
        """Drop the cached profile of *entity_id*, or every profile if None."""
        with self._lock:
            if entity_id is None:
                self._profiles.clear()
            else:
                self._profiles.pop(entity_id, None)

    @property
    def history_limit(self) -> int:
        return self._history_limit
