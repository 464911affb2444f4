from __future__ import annotations

import pytest

from equitee.services.wizard import OnboardingWizard, QuickStartWizard, WizardValidationError, is_filled


def _complete_onboarding_answers(**overrides: object) -> dict[str, object]:
    answers: dict[str, object] = {
        "registrationType": "self",
        "userType": "youth",
        "name": "Jordan",
        "email": "jordan@example.com",
        "age": 15,
        "zipCode": "33101",
        "golfExperience": "intermediate",
        "handicap": 18,
    }
    answers.update(overrides)
    return answers


def test_onboarding_next_requires_current_step() -> None:
    wizard = OnboardingWizard()

    with pytest.raises(WizardValidationError) as excinfo:
        wizard.next()

    assert excinfo.value.step == 1
    assert excinfo.value.missing == ("registrationType",)
    assert wizard.step == 1


def test_onboarding_back_keeps_answers() -> None:
    wizard = OnboardingWizard()
    wizard.next(registrationType="child")
    wizard.next(userType="parent")

    assert wizard.back() == 2
    assert wizard.data["userType"] == "parent"
    assert wizard.back() == 1
    assert wizard.back() == 1


def test_user_type_must_match_registration_type() -> None:
    wizard = OnboardingWizard()
    wizard.next(registrationType="child")

    with pytest.raises(WizardValidationError) as excinfo:
        wizard.next(userType="youth")

    assert "userType" in excinfo.value.invalid


def test_onboarding_complete_validates_every_step() -> None:
    wizard = OnboardingWizard()

    with pytest.raises(WizardValidationError) as excinfo:
        wizard.complete(_complete_onboarding_answers(email="not-an-email"))

    assert excinfo.value.step == 3
    assert set(excinfo.value.invalid) == {"email"}
    assert not wizard.completed


def test_onboarding_drops_handicap_for_beginners() -> None:
    result = OnboardingWizard().complete(_complete_onboarding_answers(golfExperience="beginner"))

    assert "handicap" not in result
    assert result["golfExperience"] == "beginner"


def test_onboarding_keeps_handicap_for_experienced_players() -> None:
    wizard = OnboardingWizard()

    result = wizard.complete(_complete_onboarding_answers())

    assert result["handicap"] == 18
    assert wizard.completed
    assert wizard.can_complete


def test_quick_start_starts_with_empty_interests_and_validates_choices() -> None:
    wizard = QuickStartWizard()

    assert wizard.data == {"interests": []}
    with pytest.raises(WizardValidationError) as excinfo:
        wizard.next(name="Sky", age=40)

    assert "age" in excinfo.value.invalid

    wizard.next(age=17)
    wizard.next(golfExperience="never-played")
    result = wizard.complete(zipCode="33134")

    assert result == {
        "interests": [],
        "name": "Sky",
        "age": 17,
        "golfExperience": "never-played",
        "zipCode": "33134",
    }


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, False), ("", False), ("  ", False), (0, False), ([], False), ("x", True), (5, True), (False, True)],
)
def test_is_filled(value: object, expected: bool) -> None:
    assert is_filled(value) is expected
