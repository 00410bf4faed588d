"""Tuning constants for the relay assistant.

Operational knobs that are not worth an environment variable. Anything a
deployment is expected to change lives in config/settings.py instead.
"""

# =============================================================================
# CONVERSATION
# =============================================================================

# Upper bound on stored history entries (user + assistant turns each count)
MAX_HISTORY_MESSAGES = 10

# =============================================================================
# STREAMING
# =============================================================================

# Minimum gap between two edits of the same message (transport rate limit)
STREAM_EDIT_INTERVAL_SECONDS = 1.5

# Lifetime of the "last pushed text" marker kept per streamed message
STREAM_MARKER_TTL_SECONDS = 300

# Telegram rejects message text above this length
MAX_MESSAGE_LENGTH = 4096

# =============================================================================
# SEARCH
# =============================================================================

SEARCH_CACHE_TTL_SECONDS = 60 * 60 * 4
SEARCH_MAX_RESULTS = 5

# A follow-up question within this window is tied to the last search topic
FOLLOWUP_WINDOW_SECONDS = 60 * 60

# =============================================================================
# COMMANDS & KEYBOARDS
# =============================================================================

FUZZY_MAX_DISTANCE = 2

MODELS_PER_PAGE = 8
MODEL_CATALOG_TTL_SECONDS = 60 * 60

# Telegram limit on callback_data, in bytes
MAX_CALLBACK_DATA_BYTES = 64
