"""Evidence, interaction and context records consumed by the trust engine.

All records are immutable. Timestamps are epoch milliseconds.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from agent_trust.trust.dimensions import TrustEvidenceType


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive evidence time window in epoch milliseconds."""

    start: float
    end: float

    def contains(self, timestamp: float) -> bool:
        return self.start <= timestamp <= self.end


@dataclass(frozen=True)
class TrustContext:
    """Scope in which trust is evaluated.

    Parameters
    ----------
    evaluator_id:
        The entity doing the evaluating. Profiles are cached per evaluator.
    world_id:
        Restrict evidence to one world when set.
    room_id:
        Restrict evidence to one room when set.
    platform:
        Free-form platform tag.
    action:
        The action under consideration, if any.
    time_window:
        Only evidence inside this window is considered when set.
    """

    evaluator_id: str
    world_id: Optional[str] = None
    room_id: Optional[str] = None
    platform: Optional[str] = None
    action: Optional[str] = None
    time_window: Optional[TimeWindow] = None

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        data: dict[str, object] = {"evaluator_id": self.evaluator_id}
        for key in ("world_id", "room_id", "platform", "action"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.time_window is not None:
            data["time_window"] = {"start": self.time_window.start, "end": self.time_window.end}
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrustContext":
        """Reconstruct from a plain dictionary."""
        window = data.get("time_window")
        return cls(
            evaluator_id=str(data["evaluator_id"]),
            world_id=data.get("world_id"),
            room_id=data.get("room_id"),
            platform=data.get("platform"),
            action=data.get("action"),
            time_window=TimeWindow(float(window["start"]), float(window["end"])) if window else None,
        )


@dataclass(frozen=True)
class TrustEvidence:
    """A single timestamped, weighted observation about a subject.

    Parameters
    ----------
    type:
        Evidence category; selects the dimension deltas.
    timestamp:
        When the observation happened (epoch ms).
    impact:
        Signed magnitude in [-100, 100]. Drives confidence polarity.
    weight:
        Importance in [0, 1]; scales dimension movement.
    description:
        Human-readable note.
    reported_by:
        Who reported the observation.
    target_entity_id:
        The subject the evidence is about.
    verified:
        Verified evidence is amplified by the policy's verification multiplier.
    context:
        Scope in which the evidence was observed.
    evaluator_id:
        Evaluator the evidence was recorded for.
    metadata:
        Arbitrary extra detail.
    """

    type: TrustEvidenceType
    timestamp: float
    impact: float
    weight: float
    description: str
    reported_by: str
    target_entity_id: str
    verified: bool
    context: TrustContext
    evaluator_id: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not -100.0 <= self.impact <= 100.0:
            raise ValueError(f"impact must be in [-100, 100], got {self.impact}")
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"weight must be in [0, 1], got {self.weight}")

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary for storage."""
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "impact": self.impact,
            "weight": self.weight,
            "description": self.description,
            "reported_by": self.reported_by,
            "target_entity_id": self.target_entity_id,
            "verified": self.verified,
            "context": self.context.to_dict(),
            "evaluator_id": self.evaluator_id,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrustEvidence":
        """Reconstruct from a plain dictionary.

        Raises
        ------
        KeyError, ValueError, TypeError
            If the record is malformed.
        """
        return cls(
            type=TrustEvidenceType(data["type"]),
            timestamp=float(data["timestamp"]),
            impact=float(data["impact"]),
            weight=float(data.get("weight", 1.0)),
            description=str(data.get("description", "")),
            reported_by=str(data["reported_by"]),
            target_entity_id=str(data["target_entity_id"]),
            verified=bool(data.get("verified", False)),
            context=TrustContext.from_dict(data["context"]),
            evaluator_id=str(data["evaluator_id"]),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass(frozen=True)
class TrustInteraction:
    """An observed interaction to be recorded as new evidence.

    ``source_entity_id`` is the acting entity whose trust moves;
    ``target_entity_id`` is the party that observed or received the action.
    The evidence is recorded for ``context.evaluator_id`` when a context is
    given, otherwise for the target.
    """

    source_entity_id: str
    target_entity_id: str
    type: TrustEvidenceType
    timestamp: float
    impact: float
    details: dict[str, Any] = field(default_factory=dict)
    context: Optional[TrustContext] = None
