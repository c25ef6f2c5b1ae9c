import pytest


def test_init_db_creates_judgment_table(fresh_db):
    db = fresh_db
    db.init_db()

    with db.get_db(read_only=True) as conn:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }

    assert "user_judgments" in tables


def test_save_load_and_delete_judgment(fresh_db):
    db = fresh_db
    db.init_db()

    db.save_judgment("42", watched=True, rating=5, wishlist=False, not_interested=False)
    db.save_judgment("42", watched=True, rating=4, wishlist=False, not_interested=False)
    db.save_judgment("7", watched=False, rating=0, wishlist=True, not_interested=False)

    rows = db.load_judgments()
    assert rows["42"] == {"watched": True, "rating": 4, "wishlist": False, "not_interested": False}
    assert rows["7"]["wishlist"] is True

    db.delete_judgment("42")
    assert set(db.load_judgments()) == {"7"}

    assert db.clear_judgments() == 1
    assert db.load_judgments() == {}


def test_nested_transactions_commit_once(fresh_db):
    db = fresh_db
    db.init_db()

    with db.get_db() as conn:
        conn.execute("INSERT INTO user_judgments (movie_id, watched) VALUES (?, ?)", ("a", 1))
        with db.get_db() as inner:
            inner.execute("INSERT INTO user_judgments (movie_id, watched) VALUES (?, ?)", ("b", 1))

    with db.get_db(read_only=True) as conn:
        count = conn.execute("SELECT COUNT(*) FROM user_judgments").fetchone()[0]
        assert count == 2


def test_outer_failure_rolls_back_nested_writes(fresh_db):
    db = fresh_db
    db.init_db()

    with pytest.raises(RuntimeError):
        with db.get_db():
            db.save_judgment("a", watched=True, rating=0, wishlist=False, not_interested=False)
            raise RuntimeError("abort")

    assert db.load_judgments() == {}
