"""docs-fetcher entry point."""

import asyncio
import sys

from loguru import logger

_USAGE = """Usage:
  docs-fetcher <package> [docs_url] [--force] [--limit=N] [--config=PATH]
  docs-fetcher --all [--force] [--limit=N] [--config=PATH]
  docs-fetcher score <package> [--details] [--threshold=SCORE] [--config=PATH]
"""


def _configure_logging() -> None:
    from docs_fetcher.config import settings

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)


def _parse_args(argv: list[str]) -> tuple[list[str], dict]:
    """Split argv into positionals and ``--flag`` / ``--key=value`` options."""
    positionals: list[str] = []
    options: dict = {
        "force": False,
        "all": False,
        "details": False,
        "limit": None,
        "threshold": None,
        "config": None,
    }
    for arg in argv:
        if arg in ("--force", "--all", "--details"):
            options[arg[2:]] = True
        elif arg.startswith("--limit="):
            options["limit"] = int(arg.split("=", 1)[1])
        elif arg.startswith("--threshold="):
            options["threshold"] = float(arg.split("=", 1)[1])
        elif arg.startswith("--config="):
            options["config"] = arg.split("=", 1)[1]
        elif arg.startswith("--"):
            raise ValueError(f"Unknown option: {arg}")
        else:
            positionals.append(arg)
    return positionals, options


async def _score(name: str, config, options: dict) -> int:
    from docs_fetcher.scoring import score_package
    from docs_fetcher.storage import DocsStore

    store = DocsStore(config.get_cache_dir(), config.package_docs_file)
    scores = await score_package(name, store)

    threshold = options["threshold"]
    shown = [s for s in scores if threshold is None or s["score"] >= threshold]
    print(f"Documentation scores for {name}:")
    for s in shown:
        print(f"\n{s['url']}\n  Score: {s['score']:.1%}")
        if options["details"]:
            d = s["details"]
            print(f"  Freshness: {d['freshness']:.1%}")
            print(f"  Size: {d['size']:.1%}")
            print(f"  Language: {d['language']}")
            print(f"  Readability: {d['readability']:.1%}")
            print(f"  Completeness: {d['completeness']:.1%}")

    average = sum(s["score"] for s in scores) / len(scores)
    print(f"\n{len(shown)} of {len(scores)} pages shown, average score {average:.1%}")
    return 0


async def _run(positionals: list[str], options: dict) -> int:
    from docs_fetcher.config import load_fetch_config
    from docs_fetcher.sources.fetcher import fetch_all_packages, fetch_package

    config = load_fetch_config(options["config"], limit=options["limit"])
    if positionals[:1] == ["score"]:
        return await _score(positionals[1], config, options)

    logger.info(f"Cache directory: {config.get_cache_dir()}")
    logger.info(f"Page limit: {config.limit}")

    if options["all"]:
        results = await fetch_all_packages(config, force=options["force"])
        failed = [r["name"] for r in results if r.get("error")]
        if failed:
            logger.warning(f"No documentation for: {', '.join(failed)}")
        return 0

    name = positionals[0]
    docs_url = positionals[1] if len(positionals) > 1 else None
    result = await fetch_package(name, config, docs_url=docs_url, force=options["force"])
    if result.get("skipped"):
        logger.info(f"{name}: snapshot kept (use --force to refetch)")
    else:
        logger.info(f"{name}: saved {len(result['pages'])} pages")
    return 0


def _cli() -> None:
    """CLI dispatcher: one package by name, every package with --all, or score."""
    from docs_fetcher.errors import DocsFetcherError

    _configure_logging()

    try:
        positionals, options = _parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"{e}\n\n{_USAGE}", file=sys.stderr)
        sys.exit(2)

    if not positionals and not options["all"]:
        print(_USAGE, file=sys.stderr)
        sys.exit(1)
    if positionals == ["score"]:
        print(f"score needs a package name\n\n{_USAGE}", file=sys.stderr)
        sys.exit(1)

    try:
        code = asyncio.run(_run(positionals, options))
    except DocsFetcherError as e:
        logger.error(f"Error fetching documentation: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    _cli()
