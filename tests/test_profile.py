import pytest

from movie_tracker.profile import build_profile, is_favorite
from movie_tracker.store import PreferenceStore, UserJudgment


def test_profile_accumulates_rating_weights_from_favorites(movie_factory):
    movies = [
        movie_factory("a", genre="Horror", themes=["Family"], holidays=["Halloween"], year=1993),
        movie_factory("b", genre="Horror", themes=["Family", "Ghosts"], holidays=[], year=2001),
        movie_factory("c", genre="Comedy", themes=["Family"], holidays=["Christmas"], year=1999),
    ]
    judgments = {
        "a": UserJudgment(watched=True, rating=5),
        "b": UserJudgment(watched=True, rating=4),
        "c": UserJudgment(watched=True, rating=3),
    }
    store = PreferenceStore(judgments)

    profile = build_profile(movies, store.judgment_of)

    assert profile.n_favorites == 2
    assert profile.genres == {"Horror": 9}
    assert profile.themes == {"Family": 9, "Ghosts": 4}
    assert profile.holidays == {"Halloween": 5}
    assert profile.decades == {1990: 5, 2000: 4}


def test_rating_three_never_contributes(movie_factory):
    movies = [movie_factory("a", genre="Drama", themes=["Loss"], year=1985)]
    store = PreferenceStore({"a": UserJudgment(watched=True, rating=3)})

    profile = build_profile(movies, store.judgment_of)

    assert profile.is_empty
    assert profile.genres == {}
    assert profile.decades == {}


def test_favorite_ignores_other_flags():
    assert is_favorite(UserJudgment(rating=4, not_interested=True))
    assert is_favorite(UserJudgment(rating=5, wishlist=True))
    assert not is_favorite(UserJudgment(watched=True, rating=3))


def test_empty_catalog_gives_empty_profile():
    profile = build_profile([], PreferenceStore().judgment_of)
    assert profile.is_empty


@pytest.mark.parametrize("year,decade", [(1990, 1990), (1999, 1990), (2000, 2000), (1946, 1940)])
def test_decade_bucketing(movie_factory, year, decade):
    movies = [movie_factory("a", year=year)]
    store = PreferenceStore({"a": UserJudgment(watched=True, rating=4)})

    profile = build_profile(movies, store.judgment_of)

    assert profile.decades == {decade: 4}
