from __future__ import annotations

import pytest

from equitee.services.recommendations import CRANDON, DEFAULT_STEPS, build_journey, personalised_steps


def _ids(profile: dict) -> list[str]:
    return [step.id for step in personalised_steps(profile)]


def test_missing_profile_gets_default_steps() -> None:
    plan = build_journey({})

    assert plan.personalised is False
    assert [step.id for step in plan.steps] == ["quick-start", "explore-courses", "free-equipment"]
    assert plan.steps == list(DEFAULT_STEPS)
    assert plan.heading == "Your Golf Journey"
    assert plan.progress == 0.0


def test_never_played_gets_equipment_and_skips_first_round() -> None:
    assert _ids({"golfExperience": "never-played", "age": 35}) == [
        "first-equipment",
        "first-lesson",
        "practice-range",
        "golf-tip",
    ]


@pytest.mark.parametrize("experience", ["beginner", "intermediate"])
def test_experienced_players_get_first_round_without_equipment(experience: str) -> None:
    assert _ids({"golfExperience": experience, "age": 35}) == [
        "first-lesson",
        "practice-range",
        "beginner-course",
        "golf-tip",
    ]


@pytest.mark.parametrize(
    ("age", "title", "price"),
    [
        (12, "Join Junior Golf Academy", "$40/session"),
        ("15", "Join Junior Golf Academy", "$40/session"),
        (16, "Book Your First Lesson", "$65/hour"),
        (None, "Book Your First Lesson", "$65/hour"),
        (0, "Book Your First Lesson", "$65/hour"),
    ],
)
def test_first_lesson_depends_on_age(age: object, title: str, price: str) -> None:
    steps = personalised_steps({"golfExperience": "beginner", "age": age})
    lesson = next(step for step in steps if step.id == "first-lesson")

    assert lesson.title == title
    assert lesson.price == price
    assert lesson.location == CRANDON
    assert lesson.course_id == "2"


def test_completed_steps_drive_progress_and_greeting() -> None:
    plan = build_journey(
        {"name": "Sky", "golfExperience": "never-played", "age": 12, "completedSteps": ["first-equipment"]}
    )

    assert plan.personalised is True
    assert plan.heading == "Hey Sky!"
    assert plan.subheading == "Let's get you started!"
    assert plan.progress == 25.0
    assert [step.completed for step in plan.steps] == [True, False, False, False]
    assert plan.as_dict()["recommendations"][1]["actionText"] == "Join Academy"
