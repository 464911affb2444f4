"""Multi-step sign-up wizards with shallow-merged answers."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sized
from dataclasses import dataclass, field
import logging
import re
from typing import Any

LOGGER = logging.getLogger(__name__)

Validator = Callable[[Any, Mapping[str, Any]], "str | None"]

REGISTRATION_TYPES = ("self", "child")
USER_TYPES_BY_REGISTRATION: Mapping[str, tuple[str, ...]] = {
    "child": ("parent", "sponsor"),
    "self": ("youth", "mentor"),
}
GOLF_EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced", "pro")
QUICK_START_EXPERIENCE_LEVELS = ("never-played", "beginner", "intermediate")
QUICK_START_AGE_CHOICES = (12, 17, 35)

_ZIP_CODE_RE = re.compile(r"^\d{5}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class WizardValidationError(ValueError):
    """Raised when a step is submitted with missing or invalid answers."""

    def __init__(self, step: int, missing: tuple[str, ...] = (), invalid: Mapping[str, str] | None = None) -> None:
        self.step = step
        self.missing = tuple(missing)
        self.invalid = dict(invalid or {})
        details = []
        if self.missing:
            details.append(f"missing {', '.join(self.missing)}")
        if self.invalid:
            details.append("; ".join(f"{name}: {reason}" for name, reason in self.invalid.items()))
        super().__init__(f"Step {step} is incomplete: {'; '.join(details)}")


def is_filled(value: Any) -> bool:
    """Mirror the form's notion of a non-empty answer."""

    if value is None:
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, Sized):
        return len(value) > 0
    return True


@dataclass(slots=True, frozen=True)
class WizardStep:
    name: str
    required: tuple[str, ...] = ()
    validators: Mapping[str, Validator] = field(default_factory=dict)


class Wizard:
    """A numbered sequence of steps sharing one answer dictionary.

    ``back`` only moves the step counter; answers collected so far are kept.
    """

    steps: tuple[WizardStep, ...] = ()

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        if not self.steps:
            raise ValueError("A wizard needs at least one step")
        self.step = 1
        self.data: dict[str, Any] = dict(initial or {})
        self.completed = False

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def current(self) -> WizardStep:
        return self.steps[self.step - 1]

    def update(self, answers: Mapping[str, Any] | None = None, **fields: Any) -> dict[str, Any]:
        """Shallow-merge answers into the collected data without moving."""

        if answers:
            self.data.update(answers)
        self.data.update(fields)
        return self.data

    def next(self, answers: Mapping[str, Any] | None = None, **fields: Any) -> int:
        self.update(answers, **fields)
        self.validate_step(self.step)
        if self.step < self.total_steps:
            self.step += 1
        return self.step

    def back(self) -> int:
        if self.step > 1:
            self.step -= 1
        return self.step

    def missing_fields(self, step: int) -> tuple[str, ...]:
        definition = self.steps[step - 1]
        return tuple(name for name in definition.required if not is_filled(self.data.get(name)))

    def validate_step(self, step: int) -> None:
        definition = self.steps[step - 1]
        missing = self.missing_fields(step)
        invalid: dict[str, str] = {}
        for name, validator in definition.validators.items():
            value = self.data.get(name)
            if not is_filled(value) and name not in definition.required:
                continue
            if name in missing:
                continue
            problem = validator(value, self.data)
            if problem:
                invalid[name] = problem
        if missing or invalid:
            raise WizardValidationError(step, missing, invalid)

    @property
    def can_complete(self) -> bool:
        try:
            self._validate_all()
        except WizardValidationError:
            return False
        return True

    def complete(self, answers: Mapping[str, Any] | None = None, **fields: Any) -> dict[str, Any]:
        """Validate every step and return the collected answers."""

        self.update(answers, **fields)
        self._validate_all()
        self.step = self.total_steps
        self.completed = True
        LOGGER.info(
            "Wizard completed",
            extra={"event": "wizard.completed", "wizard": type(self).__name__},
        )
        return self.result()

    def result(self) -> dict[str, Any]:
        return dict(self.data)

    def _validate_all(self) -> None:
        for number in range(1, self.total_steps + 1):
            self.validate_step(number)


def _one_of(choices: tuple[Any, ...]) -> Validator:
    def _check(value: Any, _: Mapping[str, Any]) -> str | None:
        return None if value in choices else f"must be one of {', '.join(map(str, choices))}"

    return _check


def _user_type_matches_registration(value: Any, data: Mapping[str, Any]) -> str | None:
    allowed = USER_TYPES_BY_REGISTRATION.get(str(data.get("registrationType")), ())
    if value not in allowed:
        return f"must be one of {', '.join(allowed)}" if allowed else "registration type is not set"
    return None


def _int_between(low: int, high: int) -> Validator:
    def _check(value: Any, _: Mapping[str, Any]) -> str | None:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return "must be a number"
        if not low <= number <= high:
            return f"must be between {low} and {high}"
        return None

    return _check


def _zip_code(value: Any, _: Mapping[str, Any]) -> str | None:
    if isinstance(value, str) and _ZIP_CODE_RE.match(value.strip()):
        return None
    return "must be a 5-digit zip code"


def _email(value: Any, _: Mapping[str, Any]) -> str | None:
    if isinstance(value, str) and _EMAIL_RE.match(value.strip()):
        return None
    return "must be an email address"


class OnboardingWizard(Wizard):
    """Four-step registration: who, role, personal details, golf experience."""

    steps = (
        WizardStep(
            name="registration_type",
            required=("registrationType",),
            validators={"registrationType": _one_of(REGISTRATION_TYPES)},
        ),
        WizardStep(
            name="user_type",
            required=("userType",),
            validators={"userType": _user_type_matches_registration},
        ),
        WizardStep(
            name="personal_info",
            required=("name", "email", "age", "zipCode"),
            validators={"email": _email, "age": _int_between(1, 100), "zipCode": _zip_code},
        ),
        WizardStep(
            name="golf_info",
            required=("golfExperience",),
            validators={"golfExperience": _one_of(GOLF_EXPERIENCE_LEVELS), "handicap": _int_between(0, 54)},
        ),
    )

    def result(self) -> dict[str, Any]:
        data = dict(self.data)
        # A handicap is only asked of players past the beginner level.
        if data.get("golfExperience") == "beginner" or data.get("handicap") in (None, ""):
            data.pop("handicap", None)
        return data


class QuickStartWizard(Wizard):
    """Three-step quick profile: name and age, experience, zip code."""

    steps = (
        WizardStep(
            name="about_you",
            required=("name", "age"),
            validators={"age": _one_of(QUICK_START_AGE_CHOICES)},
        ),
        WizardStep(
            name="experience",
            required=("golfExperience",),
            validators={"golfExperience": _one_of(QUICK_START_EXPERIENCE_LEVELS)},
        ),
        WizardStep(name="location", required=("zipCode",), validators={"zipCode": _zip_code}),
    )

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        super().__init__({"interests": [], **(initial or {})})


__all__ = [
    "OnboardingWizard",
    "QuickStartWizard",
    "Wizard",
    "WizardStep",
    "WizardValidationError",
    "is_filled",
]
