import argparse
import atexit
import json
import logging
import sys
from pathlib import Path

from .browse import CatalogFilter, compute_statistics, filter_movies, filter_options, sort_movies
from .catalog import Catalog, CatalogError, Movie, load_catalog
from .config import DEFAULT_SORT, MAX_RECOMMENDATIONS, SORT_KEYS, STATUS_FILTERS
from .database import close_pool
from .recommender import Recommendation, compute_recommendations
from .store import PreferenceStore, UserJudgment

logger = logging.getLogger(__name__)

# Register cleanup on exit
atexit.register(close_pool)


def _load(args: argparse.Namespace) -> tuple[Catalog, PreferenceStore]:
    catalog = load_catalog(getattr(args, 'catalog', None))
    store = PreferenceStore.load()
    return catalog, store


def _resolve_movie(catalog: Catalog, movie_id: str) -> Movie | None:
    movie = catalog.get(movie_id.strip())
    if movie is None:
        logger.error(f"Unknown movie id '{movie_id}'. Run 'movie-tracker list' to see ids.")
    return movie


def _build_filter(args: argparse.Namespace) -> CatalogFilter:
    return CatalogFilter(
        holiday=args.holiday,
        genre=args.genre,
        theme=args.theme,
        status=args.status,
        query=args.search or "",
    )


def _status_label(judgment: UserJudgment) -> str:
    if judgment.not_interested:
        return "Not interested"
    if judgment.watched:
        return "Watched"
    if judgment.wishlist:
        return "Wishlist"
    return "Not yet seen"


def _stars(rating: int) -> str:
    return "★" * rating + "☆" * (5 - rating)


def _format_movie_line(movie: Movie, judgment: UserJudgment) -> str:
    line = f"[{movie.id}] {movie.title} ({movie.year}) - {movie.genre} - {_status_label(judgment)}"
    if judgment.rating:
        line += f" - {_stars(judgment.rating)}"
    return line


def cmd_list(args: argparse.Namespace) -> None:
    """List movies matching the filters."""
    catalog, store = _load(args)
    movies = filter_movies(catalog, store.judgment_of, _build_filter(args))
    movies = sort_movies(movies, store.judgment_of, args.sort)

    if not movies:
        logger.info("No movies match your filters.")
        return

    for movie in movies:
        logger.info(_format_movie_line(movie, store.judgment_of(movie.id)))


def cmd_show(args: argparse.Namespace) -> None:
    """Show one movie with the user's judgment."""
    catalog, store = _load(args)
    movie = _resolve_movie(catalog, args.movie_id)
    if movie is None:
        return

    judgment = store.judgment_of(movie.id)
    logger.info(f"\n{movie.title} ({movie.year})")
    logger.info(f"  Genre: {movie.genre}")
    if movie.holidays:
        logger.info(f"  Holidays: {', '.join(movie.holidays)}")
    if movie.themes:
        logger.info(f"  Themes: {', '.join(movie.themes)}")
    if movie.description:
        logger.info(f"  {movie.description}")
    logger.info(f"  Status: {_status_label(judgment)}")
    logger.info(f"  Your rating: {_stars(judgment.rating) if judgment.rating else '-'}")


def cmd_rate(args: argparse.Namespace) -> None:
    """Rate a movie (same rating again clears it)."""
    catalog, store = _load(args)
    movie = _resolve_movie(catalog, args.movie_id)
    if movie is None:
        return

    try:
        judgment = store.set_rating(movie.id, args.rating)
    except ValueError as e:
        logger.error(str(e))
        return

    if judgment.rating:
        logger.info(f"Rated {movie.title} {_stars(judgment.rating)}")
    else:
        logger.info(f"Cleared rating for {movie.title}")


def cmd_watch(args: argparse.Namespace) -> None:
    """Toggle watched status."""
    catalog, store = _load(args)
    movie = _resolve_movie(catalog, args.movie_id)
    if movie is None:
        return

    judgment = store.toggle_watched(movie.id)
    logger.info(f"{movie.title}: {'marked as watched' if judgment.watched else 'marked as unwatched'}")


def cmd_wishlist(args: argparse.Namespace) -> None:
    """Toggle wishlist membership."""
    catalog, store = _load(args)
    movie = _resolve_movie(catalog, args.movie_id)
    if movie is None:
        return

    try:
        judgment = store.toggle_wishlist(movie.id)
    except ValueError as e:
        logger.error(str(e))
        return
    logger.info(f"{movie.title}: {'added to' if judgment.wishlist else 'removed from'} wishlist")


def cmd_not_interested(args: argparse.Namespace) -> None:
    """Toggle the not-interested mark."""
    catalog, store = _load(args)
    movie = _resolve_movie(catalog, args.movie_id)
    if movie is None:
        return

    judgment = store.toggle_not_interested(movie.id)
    if judgment.not_interested:
        logger.info(f"{movie.title}: marked as not interested")
    else:
        logger.info(f"{movie.title}: no longer marked as not interested")


def cmd_stats(args: argparse.Namespace) -> None:
    """Show tracking statistics for the filtered catalog."""
    catalog, store = _load(args)
    movies = filter_movies(catalog, store.judgment_of, _build_filter(args))
    stats = compute_statistics(movies, store.judgment_of)

    avg = f"{stats.average_rating:.1f} ★" if stats.average_rating is not None else "-"
    logger.info("\nStatistics:")
    logger.info(f"  Movies: {stats.total}")
    logger.info(f"  Watched: {stats.watched}")
    logger.info(f"  Unwatched: {stats.unwatched}")
    logger.info(f"  Wishlist: {stats.wishlist}")
    logger.info(f"  Rated: {stats.rated}")
    logger.info(f"  Average rating: {avg}")


def cmd_filters(args: argparse.Namespace) -> None:
    """Show available filter values."""
    catalog = load_catalog(getattr(args, 'catalog', None))
    options = filter_options(catalog)
    for name in ('genres', 'themes', 'holidays'):
        logger.info(f"{name.capitalize()}: {', '.join(options[name]) or '-'}")


def _recommendation_to_dict(rec: Recommendation) -> dict:
    return {
        "id": rec.movie.id,
        "title": rec.movie.title,
        "year": rec.movie.year,
        "score": round(rec.score, 2),
        "match": rec.match_percentage,
        "reason": rec.explanation,
        "reason_kind": rec.primary_reason.kind,
    }


def cmd_recommend(args: argparse.Namespace) -> None:
    """Show personalized recommendations."""
    catalog, store = _load(args)
    recs = compute_recommendations(catalog, store.judgment_of, limit=args.limit)

    if args.format == 'json':
        logger.info(json.dumps([_recommendation_to_dict(r) for r in recs], indent=2, ensure_ascii=False))
        return

    if not recs:
        logger.info("No recommendations yet. Rate a few movies 4★ or higher first.")
        return

    logger.info(f"\nRecommended for you ({len(recs)}):")
    for i, r in enumerate(recs, 1):
        logger.info(f"{i}. {r.movie.title} ({r.movie.year}) - {r.match_percentage}% match")
        logger.info(f"   Why: {r.explanation}")


def cmd_export(args: argparse.Namespace) -> None:
    """Export tracking data to JSON."""
    store = PreferenceStore.load()
    data = store.export_data()
    Path(args.file).write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.info(f"Exported {len(data)} judgments to {args.file}")


def cmd_import(args: argparse.Namespace) -> None:
    """Replace tracking data from a JSON export."""
    try:
        payload = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read {args.file}: {e}")
        return

    store = PreferenceStore.load()
    try:
        count = store.import_data(payload)
    except ValueError as e:
        logger.error(f"Invalid import file: {e}")
        return
    logger.info(f"Imported {count} judgments from {args.file}")


def cmd_clear(args: argparse.Namespace) -> None:
    """Remove all tracking data."""
    if not args.yes:
        logger.error("This deletes all your tracking data. Re-run with --yes to confirm.")
        return
    PreferenceStore.load().clear()
    logger.info("All data has been cleared!")


def _non_negative_int(value: str) -> int:
    """argparse type for counts: rejects negatives and non-integers."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--holiday", default="all", help="Only movies tagged with this holiday")
    parser.add_argument("--genre", default="all", help="Only movies of this genre")
    parser.add_argument("--theme", default="all", help="Only movies with this theme")
    parser.add_argument("--status", choices=STATUS_FILTERS, default="all", help="Filter by your status")
    parser.add_argument("--search", help="Case-insensitive text search")


def main():
    parser = argparse.ArgumentParser(description="Movie Tracker")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--catalog", help="Catalog JSON path or URL (default: MOVIE_TRACKER_CATALOG)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List movies")
    _add_filter_arguments(list_parser)
    list_parser.add_argument("--sort", choices=SORT_KEYS, default=DEFAULT_SORT, help="Sort order")
    list_parser.set_defaults(func=cmd_list)

    show_parser = subparsers.add_parser("show", help="Show a movie")
    show_parser.add_argument("movie_id", help="Movie id")
    show_parser.set_defaults(func=cmd_show)

    rate_parser = subparsers.add_parser("rate", help="Rate a movie 1-5 (0 or same rating clears)")
    rate_parser.add_argument("movie_id", help="Movie id")
    rate_parser.add_argument("rating", type=int, help="Rating 0-5")
    rate_parser.set_defaults(func=cmd_rate)

    watch_parser = subparsers.add_parser("watch", help="Toggle watched status")
    watch_parser.add_argument("movie_id", help="Movie id")
    watch_parser.set_defaults(func=cmd_watch)

    wishlist_parser = subparsers.add_parser("wishlist", help="Toggle wishlist")
    wishlist_parser.add_argument("movie_id", help="Movie id")
    wishlist_parser.set_defaults(func=cmd_wishlist)

    not_interested_parser = subparsers.add_parser("not-interested", help="Toggle not-interested")
    not_interested_parser.add_argument("movie_id", help="Movie id")
    not_interested_parser.set_defaults(func=cmd_not_interested)

    stats_parser = subparsers.add_parser("stats", help="Show statistics")
    _add_filter_arguments(stats_parser)
    stats_parser.set_defaults(func=cmd_stats)

    filters_parser = subparsers.add_parser("filters", help="Show available genres, themes and holidays")
    filters_parser.set_defaults(func=cmd_filters)

    rec_parser = subparsers.add_parser("recommend", help="Personalized recommendations")
    rec_parser.add_argument("--limit", type=_non_negative_int, default=MAX_RECOMMENDATIONS,
                            help=f"Number of recommendations (at most {MAX_RECOMMENDATIONS})")
    rec_parser.add_argument("--format", choices=['text', 'json'], default='text', help="Output format")
    rec_parser.set_defaults(func=cmd_recommend)

    export_parser = subparsers.add_parser("export", help="Export tracking data to JSON")
    export_parser.add_argument("file", help="Output file")
    export_parser.set_defaults(func=cmd_export)

    import_parser = subparsers.add_parser("import", help="Import tracking data from JSON")
    import_parser.add_argument("file", help="Input file")
    import_parser.set_defaults(func=cmd_import)

    clear_parser = subparsers.add_parser("clear", help="Delete all tracking data")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm deletion")
    clear_parser.set_defaults(func=cmd_clear)

    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(message)s'
    )

    try:
        args.func(args)
    except CatalogError as e:
        logger.error(f"Failed to load movies: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
