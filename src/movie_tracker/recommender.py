from dataclasses import dataclass, field
import logging
import math
from typing import Callable, ClassVar, Iterable, Union

from .catalog import Movie
from .profile import PreferenceProfile, JudgmentLookup, build_profile
from .config import WEIGHTS, MAX_POSSIBLE_SCORE, MAX_RECOMMENDATIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenreReason:
    kind: ClassVar[str] = "genre"
    genre: str
    score: float

    def describe(self) -> str:
        return f"You enjoyed other {self.genre} movies"


@dataclass(frozen=True)
class ThemesReason:
    kind: ClassVar[str] = "themes"
    themes: tuple[str, ...]
    score: float

    def describe(self) -> str:
        return f"Shares themes: {', '.join(self.themes)}"


@dataclass(frozen=True)
class HolidaysReason:
    kind: ClassVar[str] = "holidays"
    holidays: tuple[str, ...]
    score: float

    def describe(self) -> str:
        return f"Also a {', '.join(self.holidays)} favorite"


@dataclass(frozen=True)
class DecadeReason:
    kind: ClassVar[str] = "decade"
    decade: int
    score: float

    def describe(self) -> str:
        return f"From the {self.decade}s, an era you love"


Reason = Union[GenreReason, ThemesReason, HolidaysReason, DecadeReason]

RuleFunc = Callable[[Movie, PreferenceProfile], Union[Reason, None]]


def _genre_rule(movie: Movie, profile: PreferenceProfile) -> GenreReason | None:
    if movie.genre in profile.genres:
        return GenreReason(movie.genre, profile.genres[movie.genre] * WEIGHTS['genre'])
    return None


def _themes_rule(movie: Movie, profile: PreferenceProfile) -> ThemesReason | None:
    """Every matching theme adds its own weight; there is no cap."""
    matched = [t for t in movie.themes if t in profile.themes]
    if not matched:
        return None
    score = sum(profile.themes[t] * WEIGHTS['theme'] for t in matched)
    return ThemesReason(tuple(matched), score)


def _holidays_rule(movie: Movie, profile: PreferenceProfile) -> HolidaysReason | None:
    matched = [h for h in movie.holidays if h in profile.holidays]
    if not matched:
        return None
    score = sum(profile.holidays[h] * WEIGHTS['holiday'] for h in matched)
    return HolidaysReason(tuple(matched), score)


def _decade_rule(movie: Movie, profile: PreferenceProfile) -> DecadeReason | None:
    decade = movie.decade
    if decade in profile.decades:
        return DecadeReason(decade, profile.decades[decade] * WEIGHTS['decade'])
    return None


# Order matters: on equal sub-scores the earlier rule's reason is primary
DEFAULT_SCORING_RULES: list[RuleFunc] = [
    _genre_rule,
    _themes_rule,
    _holidays_rule,
    _decade_rule,
]


@dataclass
class ScoredCandidate:
    movie: Movie
    index: int
    score: float
    reasons: list[Reason] = field(default_factory=list)


@dataclass
class Recommendation:
    movie: Movie
    score: float
    match_percentage: int
    primary_reason: Reason
    reasons: list[Reason] = field(default_factory=list)

    @property
    def explanation(self) -> str:
        return self.primary_reason.describe()


class ScoringEngine:
    """Additive scoring over a fixed list of rules."""

    def __init__(self, rules: list[RuleFunc] | None = None):
        self.rules = rules if rules is not None else DEFAULT_SCORING_RULES

    def score(self, movie: Movie, profile: PreferenceProfile) -> tuple[float, list[Reason]]:
        """
        Score one movie against the profile.

        Returns the summed score and the contributing reasons, ordered by
        descending sub-score (stable with respect to rule order).
        """
        score = 0.0
        reasons: list[Reason] = []
        for rule in self.rules:
            reason = rule(movie, profile)
            if reason is None or reason.score == 0:
                continue
            score += reason.score
            reasons.append(reason)

        reasons.sort(key=lambda r: -r.score)
        return score, reasons


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def match_percentage(score: float) -> int:
    """Score as a percentage of the idealized maximum, capped at 100."""
    return min(100, _round_half_up(score / MAX_POSSIBLE_SCORE * 100))


def is_candidate(judgment) -> bool:
    """Unwatched movies the user has not dismissed; wishlist and rated ones included."""
    return not judgment.watched and not judgment.not_interested


def score_candidates(
    catalog: Iterable[Movie],
    judgment_of: JudgmentLookup,
    profile: PreferenceProfile,
    engine: ScoringEngine | None = None,
) -> list[ScoredCandidate]:
    """Score every eligible movie and keep those with a positive score."""
    engine = engine or ScoringEngine()
    candidates = []
    for index, movie in enumerate(catalog):
        if not is_candidate(judgment_of(movie.id)):
            continue

        score, reasons = engine.score(movie, profile)
        if score > 0:
            candidates.append(ScoredCandidate(movie, index, score, reasons))
    return candidates


def _resolve_limit(limit: int | None) -> int:
    """Requested result size, never above MAX_RECOMMENDATIONS."""
    if limit is None:
        return MAX_RECOMMENDATIONS
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    return min(limit, MAX_RECOMMENDATIONS)


def rank_candidates(candidates: list[ScoredCandidate], limit: int | None = None) -> list[Recommendation]:
    """Order by score (catalog order on ties), keep the top `limit`, attach primary reasons."""
    limit = _resolve_limit(limit)
    ranked = sorted(candidates, key=lambda c: (-c.score, c.index))
    return [
        Recommendation(
            movie=c.movie,
            score=c.score,
            match_percentage=match_percentage(c.score),
            primary_reason=c.reasons[0],
            reasons=list(c.reasons),
        )
        for c in ranked[:limit]
    ]


def compute_recommendations(
    catalog: Iterable[Movie],
    judgment_of: JudgmentLookup,
    limit: int | None = None,
) -> list[Recommendation]:
    """
    Rank unwatched movies by how well they match the user's favorites.

    Pure function of the catalog and the judgment snapshot behind
    `judgment_of`. Returns an empty list when there are no favorites or
    nothing scores above zero. `limit` may shrink the result below
    MAX_RECOMMENDATIONS but never grow it; a negative limit raises ValueError.
    """
    limit = _resolve_limit(limit)
    movies = list(catalog)
    profile = build_profile(movies, judgment_of)
    if profile.is_empty:
        logger.debug("No favorites rated yet; no recommendations")
        return []

    candidates = score_candidates(movies, judgment_of, profile)
    recommendations = rank_candidates(candidates, limit)
    logger.debug(f"Scored {len(candidates)} candidates, returning {len(recommendations)}")
    return recommendations
