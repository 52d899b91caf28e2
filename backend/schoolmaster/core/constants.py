"""Application-wide constants for the SchoolMaster platform."""

from __future__ import annotations

from decimal import Decimal

BRAND_NAME = "SchoolMaster"

# Money is handled in PLN with two decimal places
MONEY_QUANTUM = Decimal("0.01")

# Lesson defaults
DEFAULT_LESSON_DURATION = 60  # minutes

# Weekday numbering follows the web client: Sunday is 0
DAY_NAMES = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]
DAY_NAMES_PL = ["Niedziela", "Poniedziałek", "Wtorek", "Środa", "Czwartek", "Piątek", "Sobota"]

# Topic progression
FIRST_TOPIC_ID = "MAT-L01"
DEFAULT_SUBJECT_ID = "math-8th"

# Quiz question types
QUESTION_TYPES = (
    "multiple_choice",
    "true_false",
    "short_answer",
    "multiple_select",
    "math_problem",
)

# Unread digest preview length
MESSAGE_PREVIEW_LENGTH = 100

# Matching
NO_PREFERENCE = "no_preference"
DEFAULT_MATCH_LIMIT = 3
