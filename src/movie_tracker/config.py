"""
Configuration constants for the movie tracker.

This module centralizes all magic numbers and configurable parameters.
Values can be overridden via environment variables.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_float_env(key: str, default: float, min_val: float = 0) -> float:
    """
    Safely parse float from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated float value
    """
    try:
        val = float(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """
    Safely parse integer from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated integer value
    """
    try:
        val = int(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


# Storage
DB_PATH = Path(os.environ.get("MOVIE_TRACKER_DB", "data/movie_tracker.db"))

# Catalog source: a local path or an http(s) URL
CATALOG_SOURCE = os.environ.get("MOVIE_TRACKER_CATALOG", "movies.json")

# Catalog fetching
HTTP_TIMEOUT = _get_float_env("MOVIE_TRACKER_HTTP_TIMEOUT", 10.0, min_val=0.5)
MAX_HTTP_RETRIES = _get_int_env("MOVIE_TRACKER_MAX_RETRIES", 3, min_val=1)
RETRY_INITIAL_DELAY = _get_float_env("MOVIE_TRACKER_RETRY_DELAY", 0.5, min_val=0.0)

# Ratings
MIN_RATING = 0
MAX_RATING = 5
FAVORITE_MIN_RATING = 4  # Ratings at or above this build the preference profile

# Recommendation output
MAX_RECOMMENDATIONS = _get_int_env("MOVIE_TRACKER_MAX_RECOMMENDATIONS", 6, min_val=1)

# Scoring coefficients applied to accumulated profile weights
WEIGHTS = {
    'genre': 0.3,
    'theme': 0.1,    # per matching theme, uncapped
    'holiday': 0.2,  # per matching holiday tag
    'decade': 0.1,
}

# Idealized per-factor ceilings used only to normalize the match percentage.
# 'theme' is 0.4 here, not the 0.1 scoring coefficient; kept for compatibility.
MATCH_CEILING_WEIGHTS = {
    'genre': 0.3,
    'theme': 0.4,
    'holiday': 0.2,
    'decade': 0.1,
}
MAX_POSSIBLE_SCORE = MAX_RATING * sum(MATCH_CEILING_WEIGHTS.values())

# Browsing
SORT_KEYS = (
    'title-asc',
    'title-desc',
    'year-asc',
    'year-desc',
    'rating-asc',
    'rating-desc',
)
DEFAULT_SORT = 'title-asc'
STATUS_FILTERS = ('all', 'watched', 'unwatched', 'rated', 'wishlist', 'not-interested')
