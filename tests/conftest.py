import importlib
import json
import sys
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def fresh_config(monkeypatch, tmp_path):
    """
    Reload config with a temporary database path to keep tests isolated.
    """
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("MOVIE_TRACKER_DB", str(db_path))
    import movie_tracker.config as config

    importlib.reload(config)
    yield config
    monkeypatch.undo()
    importlib.reload(config)


@pytest.fixture
def fresh_db(monkeypatch, tmp_path):
    """
    Reload config/database modules with a temp DB and cleanly close the pool after use.
    """
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("MOVIE_TRACKER_DB", str(db_path))

    import movie_tracker.config as config
    import movie_tracker.database as database

    importlib.reload(config)
    importlib.reload(database)

    yield database
    database.close_pool()


def make_movie(movie_id, genre="Comedy", themes=(), holidays=(), year=2000, title=None, description=""):
    from movie_tracker.catalog import Movie

    return Movie(
        id=str(movie_id),
        title=title or f"Movie {movie_id}",
        year=year,
        genre=genre,
        themes=tuple(themes),
        holidays=tuple(holidays),
        description=description,
    )


@pytest.fixture
def movie_factory():
    return make_movie


@pytest.fixture
def catalog_file(tmp_path):
    """Small catalog document written to disk."""
    document = {
        "movies": [
            {
                "id": 1,
                "title": "Home Alone",
                "year": 1990,
                "genre": "Comedy",
                "themes": ["Family", "Home Invasion"],
                "holidays": ["Christmas"],
                "description": "A boy defends his house from burglars.",
            },
            {
                "id": 2,
                "title": "Elf",
                "year": 2003,
                "genre": "Comedy",
                "themes": ["Family"],
                "holidays": ["Christmas"],
                "description": "A human raised by elves.",
            },
            {
                "id": 3,
                "title": "Halloween",
                "year": 1978,
                "genre": "Horror",
                "themes": ["Slasher"],
                "holidays": ["Halloween"],
                "description": "A masked killer returns home.",
            },
        ]
    }
    path = tmp_path / "movies.json"
    path.write_text(json.dumps(document))
    return path
