"""Utilities for working with chat reply text."""
from __future__ import annotations

import re
from typing import Iterable

from equitee.models.course import Course


_COURSE_NAME_PATTERNS = (
    re.compile(r"([A-Z][a-z]+ ?)+Golf ?(Course|Club|Links)", re.IGNORECASE),
    re.compile(r"([A-Z][a-z]+ ?)+Country Club", re.IGNORECASE),
    re.compile(r"(Red Reef|Osprey Point|Boca Raton)", re.IGNORECASE),
)
_COURSE_SUFFIX_RE = re.compile(r"golf course|golf club|country club", re.IGNORECASE)


def strip_course_suffix(name: str) -> str:
    """Lower-case ``name`` and drop the generic "golf course"-style suffixes."""

    return _COURSE_SUFFIX_RE.sub("", name.lower()).strip()


def find_course_citations(message: object, courses: Iterable[Course]) -> list[Course]:
    """Return the courses mentioned by name in a free-form reply.

    Candidate names are picked out with a few capitalised-name patterns and then
    fuzzily matched against the known course list: a course matches when either
    name contains the other once the generic suffixes are removed. Each course is
    cited at most once, in the order it is first mentioned.
    """

    if not isinstance(message, str) or not message.strip():
        return []

    known = list(courses)
    cited: list[Course] = []
    seen: set[str] = set()

    for pattern in _COURSE_NAME_PATTERNS:
        for match in pattern.finditer(message):
            mention = match.group(0).lower()
            stripped_mention = strip_course_suffix(mention)
            for course in known:
                stripped_name = strip_course_suffix(course.name)
                if (stripped_mention and stripped_mention in course.name.lower()) or (
                    stripped_name and stripped_name in mention
                ):
                    if course.id not in seen:
                        seen.add(course.id)
                        cited.append(course)
                    break

    return cited


__all__ = ["find_course_citations", "strip_course_suffix"]
