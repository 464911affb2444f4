"""Chat transcript models shared by the chat session and the backend client."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from equitee.models.course import Course
from equitee.models.parsing import (
    listify_strings,
    mapping_value,
    number_or,
    parse_timestamp,
    record_id,
    text_value,
    utc_now,
)


class ChatMode(str, Enum):
    ONBOARDING = "onboarding"
    AI_CONSULTANT = "ai_consultant"


class SendStatus(str, Enum):
    """Progress of the most recent outbound chat request."""

    IDLE = "idle"
    SENDING = "sending"
    RETRYING = "retrying"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class CourseRecommendation:
    course: Course
    reason: str
    priority: int
    estimated_cost: float
    travel_time: str

    def to_document(self) -> dict[str, Any]:
        return {
            "course": self.course.as_dict(),
            "reason": self.reason,
            "priority": self.priority,
            "estimatedCost": self.estimated_cost,
            "travelTime": self.travel_time,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "CourseRecommendation":
        return cls(
            course=Course.from_document(mapping_value(data.get("course"))),
            reason=text_value(data.get("reason")),
            priority=int(number_or(data.get("priority"))),
            estimated_cost=number_or(data.get("estimatedCost")),
            travel_time=text_value(data.get("travelTime")),
        )


@dataclass(slots=True, frozen=True)
class MapHighlight:
    lat: float
    lng: float
    course_id: str
    priority: int | None = None
    reason: str | None = None


@dataclass(slots=True)
class ChatMessage:
    """A single bot or user entry in a conversation transcript."""

    id: str
    type: str
    content: str
    timestamp: datetime = field(default_factory=utc_now)
    options: list[str] = field(default_factory=list)
    recommendations: list[CourseRecommendation] = field(default_factory=list)
    citations: list[Course] = field(default_factory=list)

    @property
    def is_bot(self) -> bool:
        return self.type == "bot"

    def to_document(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.options:
            payload["options"] = list(self.options)
        if self.recommendations:
            payload["recommendations"] = [item.to_document() for item in self.recommendations]
        if self.citations:
            payload["courseCitations"] = [course.as_dict() for course in self.citations]
        return payload

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "ChatMessage":
        recommendations = data.get("recommendations")
        citations = data.get("courseCitations")
        return cls(
            id=record_id(data),
            type="user" if data.get("type") == "user" else "bot",
            content=text_value(data.get("content")),
            timestamp=parse_timestamp(data.get("timestamp")) or utc_now(),
            options=listify_strings(data.get("options")),
            recommendations=[
                CourseRecommendation.from_document(item)
                for item in recommendations
                if isinstance(item, Mapping)
            ]
            if isinstance(recommendations, list)
            else [],
            citations=[Course.from_document(item) for item in citations if isinstance(item, Mapping)]
            if isinstance(citations, list)
            else [],
        )


@dataclass(slots=True, frozen=True)
class ChatConversation:
    """Conversation metadata as stored by the backend."""

    id: str
    user_id: str
    mode: str = "chat"
    current_step: str = ""
    conversation_state: dict[str, Any] = field(default_factory=dict, compare=False)
    user_location: dict[str, Any] = field(default_factory=dict, compare=False)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ChatConversation":
        return cls(
            id=record_id(data),
            user_id=text_value(data.get("user_id")),
            mode=text_value(data.get("mode")) or "chat",
            current_step=text_value(data.get("current_step")),
            conversation_state=mapping_value(data.get("conversation_state")),
            user_location=mapping_value(data.get("user_location")),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "mode": self.mode,
            "currentStep": self.current_step,
            "conversationState": dict(self.conversation_state),
            "userLocation": dict(self.user_location),
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
        }


@dataclass(slots=True, frozen=True)
class ChatMessageRecord:
    """A message row from ``/chat/conversation/{id}/history``."""

    id: str
    conversation_id: str
    sender: str
    message: str
    message_type: str = "text"
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)
    created_at: datetime | None = None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ChatMessageRecord":
        return cls(
            id=record_id(data),
            conversation_id=text_value(data.get("conversation_id")),
            sender=text_value(data.get("sender")),
            message=text_value(data.get("message")),
            message_type=text_value(data.get("message_type")) or "text",
            metadata=mapping_value(data.get("metadata")),
            created_at=parse_timestamp(data.get("created_at")),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "sender": self.sender,
            "message": self.message,
            "messageType": self.message_type,
            "metadata": dict(self.metadata),
            "createdAt": _isoformat(self.created_at),
        }


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
