"""Chat widget state machine: scripted onboarding plus the AI consultant mode."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum
import logging
import secrets
import string
import time
from typing import Any, Protocol

from equitee.models.chat import ChatMessage, ChatMode, CourseRecommendation, SendStatus
from equitee.models.course import Course
from equitee.models.location import Coordinate
from equitee.services.api_client import AIQueryResult, ApiError
from equitee.services.storage import KeyValueStorage, chat_key, read_json, write_json

LOGGER = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Welcome to EquiTee! I'm here to help you find the perfect golf courses and programs. "
    "Have you played golf before?"
)
WELCOME_OPTIONS = ("Yes", "No")
SKILL_LEVEL_MESSAGE = "Great! What's your average score or skill level?"
SKILL_LEVEL_OPTIONS = ("Beginner (100+)", "Intermediate (85-100)", "Advanced (70-85)", "Pro (<70)")
BUDGET_MESSAGE = "Perfect! What's your budget for getting started with golf?"
BUDGET_OPTIONS = ("Under $50", "$50-$100", "$100-$200", "$200+")
RECOMMENDATIONS_MESSAGE = (
    "Based on your preferences, I've found some great options for you! "
    "Check out these recommended courses on the map."
)
RECOMMENDATION_OPTIONS = ("Tell me more", "Find other courses", "Switch to AI chat")
SWITCH_TO_AI_OPTION = "Switch to AI chat"
AI_MODE_GREETING = (
    "Great! I'm now in AI consultant mode. You can ask me any questions about golf courses, "
    "tips, or local programs. What would you like to know?"
)
SWITCHED_TO_AI_MESSAGE = "Switched to AI consultant mode. Ask me anything about golf!"
SWITCHED_TO_ONBOARDING_MESSAGE = "Switched to onboarding mode. Let me help guide you step by step."
APOLOGY_MESSAGE = (
    "I'm sorry, I'm having trouble connecting right now. Please try again in a little while."
)

MAX_RETRIES = 2
DEFAULT_BACKOFF_SECONDS = 1.0

_ID_ALPHABET = string.ascii_lowercase + string.digits


class OnboardingStep(str, Enum):
    """Which scripted question the latest bot message asked."""

    EXPERIENCE = "experience"
    SKILL_LEVEL = "skill_level"
    BUDGET = "budget"
    NONE = "none"


class AIQueryClient(Protocol):
    def send_ai_query(self, query: str, user_location: Coordinate | None = None) -> AIQueryResult:
        """Return the consultant's reply or raise :class:`ApiError`."""


def default_recommendations() -> list[CourseRecommendation]:
    """Canned recommendation shown at the end of the scripted onboarding."""

    return [
        CourseRecommendation(
            course=Course(
                id="1",
                name="Beginner-Friendly Golf Club",
                address="123 Golf St, Miami, FL",
                lat=25.7617,
                lng=-80.1918,
                green_fee_min=35,
                green_fee_max=55,
                youth_programs=True,
                difficulty_rating=2,
                equipment_rental=True,
            ),
            reason="Perfect for beginners with equipment rental and youth programs",
            priority=1,
            estimated_cost=45,
            travel_time="15 min drive",
        )
    ]


def generate_conversation_id() -> str:
    return "conv_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


def generate_message_id() -> str:
    return "msg_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


class ChatSession:
    """One chat widget conversation.

    The transcript is append-only and is written to storage under
    ``equitee-chat-{conversation_id}`` after every change. Network calls made in
    AI consultant mode are retried up to :data:`MAX_RETRIES` times with
    exponential backoff; a further failure appends a static apology.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        ai_client: AIQueryClient | None = None,
        *,
        conversation_id: str | None = None,
        user_location: Coordinate | None = None,
        on_course_select: Callable[[Course], None] | None = None,
        on_recommendations: Callable[[list[CourseRecommendation]], None] | None = None,
        on_status: Callable[[SendStatus], None] | None = None,
        recommendation_source: Callable[[], Sequence[CourseRecommendation]] = default_recommendations,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        max_retries: int = MAX_RETRIES,
        sleep: Callable[[float], None] | None = None,
        id_factory: Callable[[], str] = generate_conversation_id,
    ) -> None:
        self._storage = storage
        self._ai_client = ai_client
        self._on_course_select = on_course_select
        self._on_recommendations = on_recommendations
        self._on_status = on_status
        self._recommendation_source = recommendation_source
        self._backoff_seconds = backoff_seconds
        self._max_retries = max(0, max_retries)
        self._sleep = sleep or time.sleep
        self._id_factory = id_factory

        self.user_location = user_location
        self.conversation_id = conversation_id or id_factory()
        self.mode = ChatMode.ONBOARDING
        self.step = OnboardingStep.NONE
        self.messages: list[ChatMessage] = []
        self.status = SendStatus.IDLE
        self.status_history: list[SendStatus] = []
        self._restore()

    # --- lifecycle ------------------------------------------------------------------

    def open(self) -> list[ChatMessage]:
        """Show the welcome prompt the first time an empty conversation is opened."""

        if not self.messages:
            self._add_bot(WELCOME_MESSAGE, options=WELCOME_OPTIONS)
            self.step = OnboardingStep.EXPERIENCE
            self._persist()
        return self.messages

    def clear(self) -> str:
        """Delete the stored transcript and start over under a fresh id."""

        self._storage.remove_item(chat_key(self.conversation_id))
        LOGGER.info(
            "Chat conversation cleared",
            extra={"event": "chat.cleared", "conversation_id": self.conversation_id},
        )
        self.conversation_id = self._id_factory()
        self.mode = ChatMode.ONBOARDING
        self.step = OnboardingStep.NONE
        self.messages = []
        self._set_status(SendStatus.IDLE)
        return self.conversation_id

    # --- user actions ---------------------------------------------------------------

    def choose_option(self, option: str) -> list[ChatMessage]:
        """Handle a click on one of the bot's quick-reply options."""

        added_from = len(self.messages)
        self._add_user(option)
        if self.mode is ChatMode.AI_CONSULTANT:
            self._ask_consultant(option)
        else:
            self._advance_onboarding(option)
        self._persist()
        return self.messages[added_from:]

    def send_message(self, text: str) -> list[ChatMessage]:
        """Handle free-text input; blank input is ignored."""

        cleaned = text.strip()
        if not cleaned:
            return []
        return self.choose_option(cleaned)

    def toggle_mode(self) -> ChatMode:
        if self.mode is ChatMode.ONBOARDING:
            self.mode = ChatMode.AI_CONSULTANT
            self._add_bot(SWITCHED_TO_AI_MESSAGE)
        else:
            self.mode = ChatMode.ONBOARDING
            self._add_bot(SWITCHED_TO_ONBOARDING_MESSAGE)
        self.step = OnboardingStep.NONE
        self._persist()
        return self.mode

    def open_citation(self, course_id: str) -> Course:
        """Forward a cited course to the course-selected callback."""

        for message in reversed(self.messages):
            for course in message.citations:
                if course.id == course_id:
                    if self._on_course_select is not None:
                        self._on_course_select(course)
                    return course
        raise KeyError(course_id)

    # --- onboarding script -------------------------------------------------------------

    def _advance_onboarding(self, answer: str) -> None:
        if self.step is OnboardingStep.EXPERIENCE:
            if answer == "Yes":
                self._add_bot(SKILL_LEVEL_MESSAGE, options=SKILL_LEVEL_OPTIONS)
                self.step = OnboardingStep.SKILL_LEVEL
            else:
                self._add_bot(BUDGET_MESSAGE, options=BUDGET_OPTIONS)
                self.step = OnboardingStep.BUDGET
            return

        if self.step in (OnboardingStep.SKILL_LEVEL, OnboardingStep.BUDGET):
            recommendations = list(self._recommendation_source())
            self._add_bot(
                RECOMMENDATIONS_MESSAGE,
                options=RECOMMENDATION_OPTIONS,
                recommendations=recommendations,
            )
            self.step = OnboardingStep.NONE
            if self._on_recommendations is not None:
                self._on_recommendations(recommendations)
            return

        if answer == SWITCH_TO_AI_OPTION:
            self.mode = ChatMode.AI_CONSULTANT
            self._add_bot(AI_MODE_GREETING)
            self.step = OnboardingStep.NONE

    # --- AI consultant -----------------------------------------------------------------

    def _ask_consultant(self, question: str) -> None:
        if self._ai_client is None:
            self._add_bot(APOLOGY_MESSAGE)
            self._set_status(SendStatus.FAILED)
            return

        failures = 0
        self._set_status(SendStatus.SENDING)
        while True:
            try:
                result = self._ai_client.send_ai_query(question, self.user_location)
            except ApiError as exc:
                failures += 1
                if failures > self._max_retries:
                    LOGGER.warning(
                        "AI consultant unavailable after %s attempts: %s",
                        failures,
                        exc,
                        extra={"event": "chat.ai_failed", "conversation_id": self.conversation_id},
                    )
                    self._add_bot(APOLOGY_MESSAGE)
                    self._set_status(SendStatus.FAILED)
                    return
                delay = self._backoff_seconds * (2 ** (failures - 1))
                LOGGER.info(
                    "Retrying AI consultant request in %.1fs",
                    delay,
                    extra={"event": "chat.ai_retry", "attempt": failures},
                )
                self._set_status(SendStatus.RETRYING)
                self._sleep(delay)
                continue
            break

        self._add_bot(
            result.message,
            options=result.follow_up_questions,
            citations=result.course_citations,
        )
        self._set_status(SendStatus.IDLE)

    # --- transcript helpers --------------------------------------------------------------

    def _add_user(self, content: str) -> None:
        self.messages.append(ChatMessage(id=generate_message_id(), type="user", content=content))

    def _add_bot(
        self,
        content: str,
        *,
        options: Sequence[str] = (),
        recommendations: Sequence[CourseRecommendation] = (),
        citations: Sequence[Course] = (),
    ) -> None:
        self.messages.append(
            ChatMessage(
                id=generate_message_id(),
                type="bot",
                content=content,
                options=list(options),
                recommendations=list(recommendations),
                citations=list(citations),
            )
        )

    def _set_status(self, status: SendStatus) -> None:
        self.status = status
        self.status_history.append(status)
        if self._on_status is not None:
            self._on_status(status)

    def to_document(self) -> dict[str, Any]:
        return {
            "conversationId": self.conversation_id,
            "mode": self.mode.value,
            "step": self.step.value,
            "messages": [message.to_document() for message in self.messages],
        }

    def _persist(self) -> None:
        write_json(self._storage, chat_key(self.conversation_id), self.to_document())

    def _restore(self) -> None:
        stored = read_json(self._storage, chat_key(self.conversation_id))
        if not isinstance(stored, dict):
            return
        raw_messages = stored.get("messages")
        if isinstance(raw_messages, list):
            self.messages = [ChatMessage.from_document(item) for item in raw_messages if isinstance(item, dict)]
        try:
            self.mode = ChatMode(stored.get("mode", ChatMode.ONBOARDING.value))
        except ValueError:
            self.mode = ChatMode.ONBOARDING
        try:
            self.step = OnboardingStep(stored.get("step", OnboardingStep.NONE.value))
        except ValueError:
            self.step = OnboardingStep.NONE


__all__ = [
    "APOLOGY_MESSAGE",
    "ChatSession",
    "MAX_RETRIES",
    "OnboardingStep",
    "default_recommendations",
    "generate_conversation_id",
]
