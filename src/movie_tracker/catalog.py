"""
Movie catalog loading.

The catalog is a static JSON document of the form ``{"movies": [...]}``,
read from a local file or fetched over HTTP. It is loaded once per session
and treated as immutable afterwards.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import httpx

from .config import CATALOG_SOURCE, HTTP_TIMEOUT, MAX_HTTP_RETRIES, RETRY_INITIAL_DELAY
from .utils import retry_with_backoff

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('id', 'title', 'year', 'genre')


class CatalogError(Exception):
    """Raised when the catalog cannot be fetched or parsed."""


@dataclass(frozen=True)
class Movie:
    id: str
    title: str
    year: int
    genre: str
    themes: tuple[str, ...] = ()
    holidays: tuple[str, ...] = ()
    description: str = ""

    @property
    def decade(self) -> int:
        return (self.year // 10) * 10


def _unique(values: Any) -> tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    return tuple(dict.fromkeys(str(v) for v in values))


def parse_movie(raw: dict) -> Movie:
    """Build a Movie from one catalog record."""
    if not isinstance(raw, dict):
        raise CatalogError(f"Catalog entry is not an object: {raw!r}")

    missing = [f for f in REQUIRED_FIELDS if raw.get(f) in (None, "")]
    if missing:
        raise CatalogError(f"Movie {raw.get('id', '?')!r} is missing {', '.join(missing)}")

    try:
        year = int(raw['year'])
    except (TypeError, ValueError) as e:
        raise CatalogError(f"Movie {raw['id']!r} has invalid year {raw['year']!r}") from e

    return Movie(
        id=str(raw['id']),
        title=str(raw['title']),
        year=year,
        genre=str(raw['genre']),
        themes=_unique(raw.get('themes')),
        holidays=_unique(raw.get('holidays')),
        description=str(raw.get('description') or ""),
    )


class Catalog:
    """Ordered, read-only collection of movies with id lookup."""

    def __init__(self, movies: list[Movie] | tuple[Movie, ...] = ()):
        self._movies = tuple(movies)
        self._by_id: dict[str, Movie] = {}
        for movie in self._movies:
            if movie.id in self._by_id:
                raise CatalogError(f"Duplicate movie id: {movie.id}")
            self._by_id[movie.id] = movie

    def __iter__(self) -> Iterator[Movie]:
        return iter(self._movies)

    def __len__(self) -> int:
        return len(self._movies)

    def __getitem__(self, index: int) -> Movie:
        return self._movies[index]

    def __contains__(self, movie_id: object) -> bool:
        return movie_id in self._by_id

    def get(self, movie_id: str) -> Movie | None:
        return self._by_id.get(str(movie_id))

    @classmethod
    def from_document(cls, document: Any) -> "Catalog":
        if not isinstance(document, dict) or not isinstance(document.get('movies'), list):
            raise CatalogError("Catalog document must be an object with a 'movies' list")
        return cls([parse_movie(raw) for raw in document['movies']])


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_catalog_document(url: str, client: httpx.Client | None = None) -> Any:
    """
    Fetch and decode the catalog JSON from a URL.

    Transport failures, 5xx and 429 responses are retried with exponential
    backoff. Other HTTP errors fail at once. Either way the caller gets a
    CatalogError.
    """
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=HTTP_TIMEOUT, follow_redirects=True)

    @retry_with_backoff(
        max_retries=MAX_HTTP_RETRIES,
        initial_delay=RETRY_INITIAL_DELAY,
    )
    def _get() -> httpx.Response:
        resp = client.get(url)
        resp.raise_for_status()
        return resp

    try:
        resp = _get()
        return resp.json()
    except httpx.HTTPError as e:
        raise CatalogError(f"Failed to fetch movies from {url}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Catalog at {url} is not valid JSON: {e}") from e
    finally:
        if owns_client:
            client.close()


def read_catalog_document(path: str | Path) -> Any:
    """Read and decode the catalog JSON from disk."""
    path = Path(path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CatalogError(f"Catalog file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Catalog file {path} is not valid JSON: {e}") from e


def load_catalog(source: str | Path | None = None, client: httpx.Client | None = None) -> Catalog:
    """
    Load the movie catalog from a path or URL.

    Args:
        source: File path or http(s) URL (default: MOVIE_TRACKER_CATALOG)
        client: Optional httpx client, used for URL sources

    Raises:
        CatalogError: if the catalog cannot be fetched or is malformed
    """
    source = str(source or CATALOG_SOURCE)
    if _is_url(source):
        document = fetch_catalog_document(source, client=client)
    else:
        document = read_catalog_document(source)

    catalog = Catalog.from_document(document)
    logger.debug(f"Loaded {len(catalog)} movies from {source}")
    return catalog
