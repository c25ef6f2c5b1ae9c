"""
Per-movie user judgments and the store that owns them.

The store is the only writer of judgments. It keeps the invariants between
flags (wishlist and watched are exclusive; not-interested clears everything
else) and persists every change when backed by the database. The
recommendation engine only ever reads a snapshot.
"""
import logging
from dataclasses import dataclass, replace
from typing import Any

from . import database
from .config import MIN_RATING, MAX_RATING

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserJudgment:
    watched: bool = False
    rating: int = 0
    wishlist: bool = False
    not_interested: bool = False

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_JUDGMENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "watched": self.watched,
            "rating": self.rating,
            "wishlist": self.wishlist,
            "notInterested": self.not_interested,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "UserJudgment":
        not_interested = payload.get("notInterested", payload.get("not_interested", False))
        return cls(
            watched=bool(payload.get("watched", False)),
            rating=_validate_rating(payload.get("rating") or 0),
            wishlist=bool(payload.get("wishlist", False)),
            not_interested=bool(not_interested),
        )


DEFAULT_JUDGMENT = UserJudgment()


def _validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValueError(f"Rating must be an integer, got {rating!r}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}")
    return rating


def _check_consistent(movie_id: str, judgment: UserJudgment) -> None:
    """Reject flag combinations the store's own mutations can never produce."""
    if judgment.rating and not judgment.watched:
        raise ValueError(f"Movie {movie_id}: a rated movie must be watched")
    if judgment.watched and judgment.wishlist:
        raise ValueError(f"Movie {movie_id}: cannot be both watched and on the wishlist")
    if judgment.not_interested and (judgment.watched or judgment.wishlist or judgment.rating):
        raise ValueError(f"Movie {movie_id}: not-interested cannot be combined with other flags")


class PreferenceStore:
    """
    Mutable judgment store.

    Use PreferenceStore.load() for a database-backed store; the plain
    constructor gives an in-memory store.
    """

    def __init__(self, judgments: dict[str, UserJudgment] | None = None, persist: bool = False):
        self._judgments: dict[str, UserJudgment] = {
            str(k): v for k, v in (judgments or {}).items() if not v.is_default
        }
        self._persist = persist

    @classmethod
    def load(cls) -> "PreferenceStore":
        """Open the database-backed store."""
        database.init_db()
        rows = database.load_judgments()
        judgments = {movie_id: UserJudgment(**row) for movie_id, row in rows.items()}
        logger.debug(f"Loaded {len(judgments)} judgments from database")
        return cls(judgments, persist=True)

    def __len__(self) -> int:
        return len(self._judgments)

    def judgment_of(self, movie_id: str) -> UserJudgment:
        return self._judgments.get(str(movie_id), DEFAULT_JUDGMENT)

    def snapshot(self) -> dict[str, UserJudgment]:
        return dict(self._judgments)

    def _put(self, movie_id: str, judgment: UserJudgment) -> UserJudgment:
        movie_id = str(movie_id)
        if judgment.is_default:
            self._judgments.pop(movie_id, None)
            if self._persist:
                database.delete_judgment(movie_id)
        else:
            self._judgments[movie_id] = judgment
            if self._persist:
                database.save_judgment(
                    movie_id,
                    judgment.watched,
                    judgment.rating,
                    judgment.wishlist,
                    judgment.not_interested,
                )
        return judgment

    def set_rating(self, movie_id: str, rating: int) -> UserJudgment:
        """
        Rate a movie.

        Re-applying the current rating clears it. Any positive rating also
        marks the movie as watched.
        """
        rating = _validate_rating(rating)
        current = self.judgment_of(movie_id)

        if current.rating == rating:
            rating = 0

        if rating > 0:
            updated = UserJudgment(watched=True, rating=rating)
        else:
            updated = replace(current, rating=0)
        return self._put(movie_id, updated)

    def toggle_watched(self, movie_id: str) -> UserJudgment:
        """Flip watched status. Un-watching also clears the rating."""
        current = self.judgment_of(movie_id)
        if current.watched:
            updated = replace(current, watched=False, rating=0)
        else:
            updated = UserJudgment(watched=True, rating=current.rating)
        return self._put(movie_id, updated)

    def toggle_wishlist(self, movie_id: str) -> UserJudgment:
        current = self.judgment_of(movie_id)
        if current.wishlist:
            return self._put(movie_id, replace(current, wishlist=False))
        if current.watched:
            raise ValueError(f"Movie {movie_id} is already watched; cannot add to wishlist")
        return self._put(movie_id, replace(current, wishlist=True, not_interested=False))

    def toggle_not_interested(self, movie_id: str) -> UserJudgment:
        current = self.judgment_of(movie_id)
        if current.not_interested:
            return self._put(movie_id, DEFAULT_JUDGMENT)
        return self._put(movie_id, UserJudgment(not_interested=True))

    def clear(self) -> None:
        self._judgments.clear()
        if self._persist:
            database.clear_judgments()

    def export_data(self) -> dict[str, dict[str, Any]]:
        """Export judgments as a JSON-ready mapping keyed by movie id."""
        return {movie_id: j.to_dict() for movie_id, j in sorted(self._judgments.items())}

    def import_data(self, payload: dict[str, Any]) -> int:
        """
        Replace all judgments with an exported mapping.

        The payload is validated in full before anything is written.
        Returns the number of judgments imported.
        """
        if not isinstance(payload, dict):
            raise ValueError("Import payload must be an object keyed by movie id")

        parsed: dict[str, UserJudgment] = {}
        for movie_id, entry in payload.items():
            if not isinstance(entry, dict):
                raise ValueError(f"Entry for movie {movie_id} must be an object")
            judgment = UserJudgment.from_dict(entry)
            _check_consistent(movie_id, judgment)
            if not judgment.is_default:
                parsed[str(movie_id)] = judgment

        if self._persist:
            with database.get_db():
                database.clear_judgments()
                for movie_id, judgment in parsed.items():
                    database.save_judgment(
                        movie_id,
                        judgment.watched,
                        judgment.rating,
                        judgment.wishlist,
                        judgment.not_interested,
                    )

        self._judgments = parsed
        return len(parsed)
