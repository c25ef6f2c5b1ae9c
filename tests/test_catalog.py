import json

import httpx
import pytest

from movie_tracker import catalog


def test_load_catalog_from_file(catalog_file):
    movies = catalog.load_catalog(catalog_file)

    assert len(movies) == 3
    assert [m.id for m in movies] == ["1", "2", "3"]
    home_alone = movies.get("1")
    assert home_alone.title == "Home Alone"
    assert home_alone.themes == ("Family", "Home Invasion")
    assert home_alone.holidays == ("Christmas",)
    assert home_alone.decade == 1990
    assert "2" in movies
    assert movies[2].genre == "Horror"


def test_parse_movie_drops_duplicate_tags_and_defaults_optional_fields():
    movie = catalog.parse_movie({
        "id": "x",
        "title": "X",
        "year": "1999",
        "genre": "Drama",
        "themes": ["Loss", "Loss", "Hope"],
    })

    assert movie.year == 1999
    assert movie.themes == ("Loss", "Hope")
    assert movie.holidays == ()
    assert movie.description == ""


@pytest.mark.parametrize("raw", [
    {"id": 1, "title": "No genre", "year": 2000},
    {"id": 1, "title": "Bad year", "year": "soon", "genre": "Drama"},
    "not-an-object",
])
def test_parse_movie_rejects_malformed_records(raw):
    with pytest.raises(catalog.CatalogError):
        catalog.parse_movie(raw)


def test_duplicate_ids_are_rejected():
    doc = {"movies": [
        {"id": 1, "title": "A", "year": 2000, "genre": "Drama"},
        {"id": "1", "title": "B", "year": 2001, "genre": "Drama"},
    ]}
    with pytest.raises(catalog.CatalogError, match="Duplicate"):
        catalog.Catalog.from_document(doc)


def test_missing_file_and_bad_json_raise_catalog_error(tmp_path):
    with pytest.raises(catalog.CatalogError, match="not found"):
        catalog.load_catalog(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(catalog.CatalogError, match="not valid JSON"):
        catalog.load_catalog(bad)

    wrong_shape = tmp_path / "shape.json"
    wrong_shape.write_text(json.dumps([{"id": 1}]))
    with pytest.raises(catalog.CatalogError, match="'movies'"):
        catalog.load_catalog(wrong_shape)


def test_load_catalog_from_url_uses_provided_client():
    payload = {"movies": [{"id": 7, "title": "Elf", "year": 2003, "genre": "Comedy"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/movies.json"
        return httpx.Response(200, json=payload)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        movies = catalog.load_catalog("https://example.test/movies.json", client=client)

    assert [m.title for m in movies] == ["Elf"]


def test_fetch_retries_server_errors_then_succeeds(monkeypatch):
    monkeypatch.setattr(catalog, "RETRY_INITIAL_DELAY", 0.0)
    monkeypatch.setattr(catalog, "MAX_HTTP_RETRIES", 3)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"movies": []})

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        movies = catalog.load_catalog("https://example.test/movies.json", client=client)

    assert len(movies) == 0
    assert calls["n"] == 2


def test_fetch_failure_raises_catalog_error(monkeypatch):
    monkeypatch.setattr(catalog, "RETRY_INITIAL_DELAY", 0.0)
    monkeypatch.setattr(catalog, "MAX_HTTP_RETRIES", 2)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(catalog.CatalogError, match="Failed to fetch movies"):
            catalog.load_catalog("https://example.test/movies.json", client=client)


def test_fetch_non_json_body_raises_catalog_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(catalog.CatalogError, match="not valid JSON"):
            catalog.load_catalog("https://example.test/movies.json", client=client)


def test_client_errors_are_not_retried(monkeypatch):
    monkeypatch.setattr(catalog, "RETRY_INITIAL_DELAY", 0.0)
    monkeypatch.setattr(catalog, "MAX_HTTP_RETRIES", 3)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(404)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(catalog.CatalogError, match="Failed to fetch movies"):
            catalog.load_catalog("https://example.test/movies.json", client=client)

    assert calls["n"] == 1


def test_transport_errors_are_retried(monkeypatch):
    monkeypatch.setattr(catalog, "RETRY_INITIAL_DELAY", 0.0)
    monkeypatch.setattr(catalog, "MAX_HTTP_RETRIES", 3)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"movies": []})

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        assert len(catalog.load_catalog("https://example.test/movies.json", client=client)) == 0

    assert calls["n"] == 3
