from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from . import arxiv_ops
from .config import SkillConfig
from .errors import ClawkitError
from .fetch_cache import SOURCE_CACHE, SOURCE_STALE, FetchCache, cache_key, cached_fetch
from .joblog import SkillLogger, build_logger
from .notify import WebhookNotifier
from .seen_set import SeenSetDeduplicator
from .state_store import JsonFileRepository

FORMATS = ("json", "markdown")


@dataclass
class SearchOptions:
    query: str
    limit: int = 5
    days: Optional[int] = None
    watch: bool = False
    notify_target: Optional[str] = None
    output_format: str = "json"


def run_search(
    options: SearchOptions,
    cache: FetchCache,
    logger: SkillLogger,
    dedup: Optional[SeenSetDeduplicator] = None,
    notifier: Optional[WebhookNotifier] = None,
    fetch: Optional[Callable[[str, int], str]] = None,
    jitter_max: float = 2.0,
) -> List[Dict[str, Any]]:
    fetch = fetch or arxiv_ops.fetch_arxiv
    verbose = not options.watch
    if verbose:
        logger.log(f'[ArXiv] Searching for: "{options.query}" (limit: {options.limit})')

    key = cache_key(options.query, options.limit)
    result = cached_fetch(
        cache,
        key,
        lambda: fetch(options.query, options.limit),
        jitter_max=jitter_max,
    )
    if verbose:
        if result.source == SOURCE_CACHE:
            logger.log(f"[ArXiv] Cache Hit ({key}).")
        elif result.source != SOURCE_STALE:
            logger.log("[ArXiv] Cache Updated.")

    papers = arxiv_ops.parse_feed(result.body)

    if options.days:
        initial = len(papers)
        papers = arxiv_ops.filter_recent(papers, options.days)
        if verbose:
            logger.log(f"[ArXiv] Date Filter: Kept {len(papers)}/{initial} papers (Last {options.days} days).")

    if options.watch:
        if dedup is None:
            raise ValueError("watch mode needs a seen-set deduplicator")
        outcome = dedup.filter_new(options.query, (p.get("id") for p in papers))
        new_ids = set(outcome.new)
        emitted = set()
        new_papers = []
        for paper in papers:
            pid = paper.get("id")
            if pid in new_ids and pid not in emitted:
                emitted.add(pid)
                new_papers.append(paper)
        if new_papers:
            logger.log(f"[ArXiv] Watch Mode: Found {len(new_papers)} new papers.")
            if options.notify_target and notifier is not None:
                notifier.send(new_papers, options.notify_target)
        else:
            logger.log("[ArXiv] Watch Mode: No new papers found.")
        papers = new_papers

    return papers


def render_papers(papers: List[Dict[str, Any]], output_format: str) -> str:
    if output_format == "markdown":
        return arxiv_ops.render_markdown(papers)
    return arxiv_ops.render_json(papers)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Search arXiv with a 15-minute response cache; --watch reports only papers not seen before.",
    )
    add_arguments(ap)
    return ap


def add_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("query", help='Search text or arXiv query syntax (e.g. "cat:cs.AI AND ti:agents").')
    ap.add_argument("--limit", "--max-results", dest="limit", type=int, default=5, help="Max results (default: 5).")
    ap.add_argument("--days", type=int, help="Keep only papers published within the last N days.")
    ap.add_argument("--watch", action="store_true", help="Only report papers not seen in earlier watch runs.")
    ap.add_argument("--notify", dest="notify_target", help="Webhook URL to notify with new papers (watch mode).")
    ap.add_argument("--format", dest="output_format", choices=FORMATS, default="json", help="Output format.")
    ap.add_argument("--cache-dir", help="Response cache directory (default: <workspace>/memory/arxiv_cache).")
    ap.add_argument("--state", help="Watch state file (default: <workspace>/memory/arxiv_watch_state.json).")
    ap.add_argument("--no-jitter", action="store_true", help="Skip the random pre-fetch delay.")
    ap.add_argument("--log-file", help="Also append diagnostics to this file.")


def run(args: argparse.Namespace, config: Optional[SkillConfig] = None) -> int:
    if not args.query or not args.query.strip():
        raise SystemExit("Missing query.")
    if args.limit < 1:
        raise SystemExit("--limit must be >= 1.")
    if args.days is not None and args.days < 1:
        raise SystemExit("--days must be >= 1.")
    if args.notify_target and not args.watch:
        raise SystemExit("--notify requires --watch.")

    cfg = config or SkillConfig.from_env()
    logger = build_logger(args.log_file or cfg.log_file)
    cache_dir = Path(args.cache_dir).expanduser() if args.cache_dir else cfg.arxiv_cache_dir
    state_path = Path(args.state).expanduser() if args.state else cfg.seen_state_file
    options = SearchOptions(
        query=args.query.strip(),
        limit=args.limit,
        days=args.days,
        watch=args.watch,
        notify_target=args.notify_target,
        output_format=args.output_format,
    )
    dedup = SeenSetDeduplicator(JsonFileRepository(state_path, logger=logger)) if args.watch else None
    try:
        papers = run_search(
            options,
            FetchCache(cache_dir, logger=logger),
            logger,
            dedup=dedup,
            notifier=WebhookNotifier(logger),
            jitter_max=0.0 if args.no_jitter else cfg.fetch_jitter_sec,
        )
    except (ClawkitError, OSError) as exc:
        logger.log(f"Error fetching ArXiv data: {exc}")
        return 1
    print(render_papers(papers, options.output_format), flush=True)
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
