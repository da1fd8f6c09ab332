"""
Application Constants

Centralizes magic numbers and word lists used by the extraction heuristics
and the dialogue engine. Avoids hardcoded values scattered throughout the
codebase.

Usage:
    from config.constants import NAME_MAX_LENGTH, SESSION_TTL_MINUTES
"""

# =============================================================================
# Name Extraction
# =============================================================================

# Accepted candidate length is strictly between these bounds
NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 40

# Longest run of capitalised words considered a name
NAME_MAX_CAPITALIZED_WORDS = 4

# Whole-input fallback accepts at most this many words
NAME_MAX_FALLBACK_WORDS = 3

# Trailing words stripped from a captured name ("Raj Kumar sir" -> "Raj Kumar")
NAME_FILLER_WORDS = (
    "is", "and", "or", "but", "so", "then", "here", "sir", "madam", "thank you",
)

# Replies that are never names on their own
ACKNOWLEDGEMENT_WORDS = frozenset({
    "yes", "yeah", "yep", "no", "nope", "ok", "okay", "sure", "fine", "alright",
    "maybe", "hi", "hello", "hey", "thanks", "thank you",
})


# =============================================================================
# Intent Classification
# =============================================================================

# Replies with at most this many words are taken as a direct answer
SHORT_REPLY_MAX_WORDS = 5


# =============================================================================
# Remote Understanding
# =============================================================================

# LLM temperature for extraction (lower = more consistent)
LLM_TEMPERATURE = 0.3

# Temperature for the free-form welcome message
WELCOME_TEMPERATURE = 0.7

# Confidence reported by the local heuristic extraction path
FALLBACK_CONFIDENCE = 0.7


# =============================================================================
# Session Settings
# =============================================================================

# Session time-to-live in minutes
SESSION_TTL_MINUTES = 30

# Maximum number of in-process sessions (prevents memory leak)
MAX_LOCAL_SESSIONS = 1000


# =============================================================================
# Input Validation
# =============================================================================

# Maximum user input length (prevents DoS)
MAX_USER_INPUT_LENGTH = 10000

# Field types whose value must be one of the declared options
CHOICE_FIELD_TYPES = {'radio'}

# Distinct field labels whose compiled templates are kept (labels come from client forms)
LABEL_PATTERN_CACHE_SIZE = 512


# =============================================================================
# Speech
# =============================================================================

# Short UI language code -> recognition language tag
LANGUAGE_TAGS = {
    "en": "en-US",
    "hi": "hi-IN",
    "te": "te-IN",
}

DEFAULT_LANGUAGE_TAG = "en-US"

# Spoken / failed utterances remembered per playback queue
PLAYBACK_HISTORY_SIZE = 50

# Synthesized clips held per session until the client fetches them
AUDIO_OUTBOX_SIZE = 10
