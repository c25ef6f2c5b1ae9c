"""
Catalog browsing: filtering, free-text search, sorting and summary statistics.
"""
import logging
from dataclasses import dataclass
from typing import Iterable

from .catalog import Movie
from .config import SORT_KEYS, DEFAULT_SORT, STATUS_FILTERS
from .profile import JudgmentLookup
from .store import UserJudgment

logger = logging.getLogger(__name__)

ALL = "all"


@dataclass(frozen=True)
class CatalogFilter:
    holiday: str = ALL
    genre: str = ALL
    theme: str = ALL
    status: str = ALL
    query: str = ""

    def __post_init__(self) -> None:
        if self.status not in STATUS_FILTERS:
            raise ValueError(f"Unknown status filter '{self.status}' (expected one of {', '.join(STATUS_FILTERS)})")


@dataclass
class CatalogStats:
    total: int = 0
    watched: int = 0
    unwatched: int = 0
    wishlist: int = 0
    rated: int = 0
    average_rating: float | None = None


def _matches_status(status: str, judgment: UserJudgment) -> bool:
    if status == "watched":
        return judgment.watched
    if status == "unwatched":
        return not judgment.watched
    if status == "rated":
        return judgment.rating > 0
    if status == "wishlist":
        return judgment.wishlist
    if status == "not-interested":
        return judgment.not_interested
    return True


def _searchable_text(movie: Movie) -> str:
    return " ".join([
        movie.title,
        movie.description,
        " ".join(movie.holidays),
        " ".join(movie.themes),
    ]).lower()


def matches(movie: Movie, judgment: UserJudgment, criteria: CatalogFilter) -> bool:
    if criteria.holiday != ALL and criteria.holiday not in movie.holidays:
        return False
    if criteria.genre != ALL and movie.genre != criteria.genre:
        return False
    if criteria.theme != ALL and criteria.theme not in movie.themes:
        return False
    if not _matches_status(criteria.status, judgment):
        return False

    query = criteria.query.lower()
    if query and query not in _searchable_text(movie):
        return False
    return True


def filter_movies(
    catalog: Iterable[Movie],
    judgment_of: JudgmentLookup,
    criteria: CatalogFilter | None = None,
) -> list[Movie]:
    """Movies passing every active filter, in catalog order."""
    criteria = criteria or CatalogFilter()
    return [m for m in catalog if matches(m, judgment_of(m.id), criteria)]


def sort_movies(
    movies: Iterable[Movie],
    judgment_of: JudgmentLookup,
    sort_key: str = DEFAULT_SORT,
) -> list[Movie]:
    """Stable sort by one of SORT_KEYS."""
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort '{sort_key}' (expected one of {', '.join(SORT_KEYS)})")

    field_name, direction = sort_key.rsplit("-", 1)
    reverse = direction == "desc"

    if field_name == "title":
        key = lambda m: m.title.casefold()
    elif field_name == "year":
        key = lambda m: m.year
    else:
        key = lambda m: judgment_of(m.id).rating

    return sorted(movies, key=key, reverse=reverse)


def filter_options(catalog: Iterable[Movie]) -> dict[str, list[str]]:
    """Sorted unique genres, themes and holidays present in the catalog."""
    genres: set[str] = set()
    themes: set[str] = set()
    holidays: set[str] = set()
    for movie in catalog:
        genres.add(movie.genre)
        themes.update(movie.themes)
        holidays.update(movie.holidays)
    return {
        'genres': sorted(genres),
        'themes': sorted(themes),
        'holidays': sorted(holidays),
    }


def compute_statistics(movies: Iterable[Movie], judgment_of: JudgmentLookup) -> CatalogStats:
    stats = CatalogStats()
    rating_total = 0

    for movie in movies:
        judgment = judgment_of(movie.id)
        stats.total += 1
        if judgment.watched:
            stats.watched += 1
        if judgment.wishlist:
            stats.wishlist += 1
        if judgment.rating > 0:
            stats.rated += 1
            rating_total += judgment.rating

    stats.unwatched = stats.total - stats.watched
    if stats.rated:
        stats.average_rating = rating_total / stats.rated
    return stats
