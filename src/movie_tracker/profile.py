import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .catalog import Movie
from .config import FAVORITE_MIN_RATING
from .store import UserJudgment

logger = logging.getLogger(__name__)

JudgmentLookup = Callable[[str], UserJudgment]


@dataclass
class PreferenceProfile:
    """Attribute weights accumulated from the user's favorite movies."""
    n_favorites: int = 0

    genres: dict[str, float] = field(default_factory=dict)
    themes: dict[str, float] = field(default_factory=dict)
    holidays: dict[str, float] = field(default_factory=dict)
    decades: dict[int, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.n_favorites == 0


def is_favorite(judgment: UserJudgment) -> bool:
    """A favorite is any movie rated at or above the threshold, whatever its other flags."""
    return judgment.rating >= FAVORITE_MIN_RATING


def _accumulate_list_scores(items: Iterable, weight: float, scores: dict) -> None:
    for item in items:
        scores[item] += weight


def build_profile(catalog: Iterable[Movie], judgment_of: JudgmentLookup) -> PreferenceProfile:
    """
    Build the preference profile from favorites.

    Each favorite contributes its own rating as weight to its genre, every
    theme, every holiday tag and its decade. Weights only add up; there is
    no decay, normalization or cap.

    An empty profile (no favorites) is a valid result; callers treat it as
    "nothing to recommend".
    """
    scores = {
        'genre': defaultdict(float),
        'theme': defaultdict(float),
        'holiday': defaultdict(float),
        'decade': defaultdict(float),
    }
    n_favorites = 0

    for movie in catalog:
        judgment = judgment_of(movie.id)
        if not is_favorite(judgment):
            continue

        weight = judgment.rating
        n_favorites += 1

        scores['genre'][movie.genre] += weight
        _accumulate_list_scores(movie.themes, weight, scores['theme'])
        _accumulate_list_scores(movie.holidays, weight, scores['holiday'])
        scores['decade'][movie.decade] += weight

    profile = PreferenceProfile(
        n_favorites=n_favorites,
        genres=dict(scores['genre']),
        themes=dict(scores['theme']),
        holidays=dict(scores['holiday']),
        decades=dict(scores['decade']),
    )
    logger.debug(
        f"Built profile from {n_favorites} favorites: "
        f"{len(profile.genres)} genres, {len(profile.themes)} themes, "
        f"{len(profile.holidays)} holidays, {len(profile.decades)} decades"
    )
    return profile
