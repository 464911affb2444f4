"""Personalised next steps built from the locally stored profile."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Any, Mapping

from equitee.models.location import Coordinate
from equitee.models.parsing import listify_strings, optional_number, optional_str

LOGGER = logging.getLogger(__name__)

JUNIOR_AGE_LIMIT = 16

CRANDON = Coordinate(lat=25.7085, lng=-80.1617)
FONTAINEBLEAU = Coordinate(lat=25.7753, lng=-80.3267)
PALMETTO = Coordinate(lat=25.6789, lng=-80.3456)


@dataclass(slots=True, frozen=True)
class NextStep:
    id: str
    type: str
    title: str
    description: str
    priority: str
    action_text: str
    icon: str
    estimated_time: str | None = None
    price: str | None = None
    distance: str | None = None
    location: Coordinate | None = None
    course_id: str | None = None
    completed: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "actionText": self.action_text,
            "icon": self.icon,
            "estimatedTime": self.estimated_time,
            "price": self.price,
            "distance": self.distance,
            "location": self.location.as_dict() if self.location else None,
            "courseId": self.course_id,
            "completed": self.completed,
        }


@dataclass(slots=True)
class JourneyPlan:
    """What the recommendations panel shows for one profile."""

    heading: str
    subheading: str
    personalised: bool
    steps: list[NextStep] = field(default_factory=list)
    progress: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "heading": self.heading,
            "subheading": self.subheading,
            "personalised": self.personalised,
            "progress": self.progress,
            "recommendations": [step.as_dict() for step in self.steps],
        }


DEFAULT_STEPS: tuple[NextStep, ...] = (
    NextStep(
        id="quick-start",
        type="program",
        title="Take Our 2-Minute Golf Quiz",
        description="Get personalized recommendations instantly",
        priority="high",
        action_text="Start Quiz",
        icon="🎯",
        estimated_time="2 min",
    ),
    NextStep(
        id="explore-courses",
        type="course",
        title="Explore Beginner-Friendly Courses",
        description="Find welcoming courses with youth programs",
        priority="medium",
        action_text="Browse Courses",
        icon="🏌️",
    ),
    NextStep(
        id="free-equipment",
        type="equipment",
        title="Find Free Equipment",
        description="Get started without breaking the bank",
        priority="medium",
        action_text="View Free Gear",
        icon="🎁",
    ),
)


def _first_lesson(is_junior: bool) -> NextStep:
    if is_junior:
        return NextStep(
            id="first-lesson",
            type="course",
            title="Join Junior Golf Academy",
            description="Meet other young golfers and learn together at Crandon Golf Course",
            priority="high",
            action_text="Join Academy",
            icon="🎓",
            price="$40/session",
            distance="0.9 miles",
            location=CRANDON,
            course_id="2",
        )
    return NextStep(
        id="first-lesson",
        type="course",
        title="Book Your First Lesson",
        description="Start with a professional instructor at our recommended course",
        priority="high",
        action_text="Book Lesson",
        icon="🎓",
        price="$65/hour",
        distance="0.9 miles",
        location=CRANDON,
        course_id="2",
    )


def personalised_steps(profile: Mapping[str, Any]) -> list[NextStep]:
    """Return the ordered next steps for a stored profile."""

    never_played = profile.get("golfExperience") == "never-played"
    age = optional_number(profile.get("age"))
    # A missing or zero age never counts as junior.
    is_junior = bool(age) and age < JUNIOR_AGE_LIMIT

    steps: list[NextStep] = []
    if never_played:
        steps.append(
            NextStep(
                id="first-equipment",
                type="equipment",
                title="Get Your First Golf Set",
                description="Perfect starter set for absolute beginners",
                priority="high",
                action_text="Find Beginner Set",
                icon="🏌️",
                price="Free - $75",
                distance="1.2 miles",
            )
        )
    steps.append(_first_lesson(is_junior))
    steps.append(
        NextStep(
            id="practice-range",
            type="course",
            title="Find a Practice Range",
            description="Perfect your swing at Fontainebleau driving range",
            priority="medium",
            action_text="Visit Range",
            icon="🎯",
            price="$15-25",
            distance="1.5 miles",
            location=FONTAINEBLEAU,
            course_id="3",
        )
    )
    if not never_played:
        steps.append(
            NextStep(
                id="beginner-course",
                type="course",
                title="Play Your First Round",
                description="Youth-friendly course perfect for beginners",
                priority="medium",
                action_text="Book Round",
                icon="⛳",
                price="$30-50",
                distance="2.1 miles",
                location=PALMETTO,
                course_id="4",
            )
        )
    steps.append(
        NextStep(
            id="golf-tip",
            type="tip",
            title="Pro Tip: Grip Basics",
            description="Master the fundamentals before your first swing",
            priority="low",
            action_text="Watch Video",
            icon="💡",
            estimated_time="3 min",
        )
    )
    return steps


def build_journey(profile: Mapping[str, Any] | None) -> JourneyPlan:
    """Build the next-steps panel for ``profile``; an empty profile gets the defaults."""

    if not profile:
        return JourneyPlan(
            heading="Your Golf Journey",
            subheading="Your next steps await",
            personalised=False,
            steps=list(DEFAULT_STEPS),
        )

    completed = set(listify_strings(profile.get("completedSteps")))
    steps = [replace(step, completed=step.id in completed) for step in personalised_steps(profile)]
    progress = round(len(completed) / len(steps) * 100, 1) if completed else 0.0
    name = optional_str(profile.get("name"))
    plan = JourneyPlan(
        heading=f"Hey {name}!" if name else "Your Golf Journey",
        subheading=(
            "Let's get you started!"
            if profile.get("golfExperience") == "never-played"
            else "Your next steps await"
        ),
        personalised=True,
        steps=steps,
        progress=progress,
    )
    LOGGER.debug(
        "Journey plan built",
        extra={"event": "recommendations.built", "steps": [step.id for step in steps]},
    )
    return plan


__all__ = ["DEFAULT_STEPS", "JourneyPlan", "NextStep", "build_journey", "personalised_steps"]
