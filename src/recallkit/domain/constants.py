"""Centralized constants for recallkit.

All magic numbers and format markers live here so every layer
imports from a single source of truth.
"""

# ---------- Markdown dialect ----------
BLANK_MARKER = "___"
CHECKMARK = "✅"
EM_DASH = "—"
MAX_CHOICE_LETTER = "J"
QUESTION_PREVIEW_LEN = 50

# ---------- Question editing ----------
DEFAULT_POINTS = 1
MIN_POINTS = 1
MAX_POINTS = 10
MIN_CHOICES = 2
MAX_CHOICES = 10

# ---------- SM-2 ----------
DEFAULT_EASE = 2.5
MIN_EASE = 1.3
MAX_IMPORT_EASE = 2.5
PASSING_QUALITY = 3
MAX_QUALITY = 5
MASTERY_REPETITIONS = 2

# ---------- Storage ----------
QUESTIONS_KEY = "recallkit:questions"
REVIEW_METADATA_KEY = "recallkit:review-metadata"

# ---------- Import / export ----------
EXPORT_VERSION = "1.0"
