"""Reference-counted, time-bounded in-process cache."""

import logging

import click
from dotenv import load_dotenv

from .cache import Cache, Handle
from .errors import InvalidDurationError, WeakCacheError

__version__ = "0.1.0"

logger = logging.getLogger("weakcache")


@click.group()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (can be used multiple times)",
)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to .env file",
)
def main(verbose: int, env_file: str | None) -> None:
    """weakcache command line tools."""
    logging_level = logging.WARNING
    if verbose == 1:
        logging_level = logging.INFO
    elif verbose >= 2:
        logging_level = logging.DEBUG

    logging.basicConfig(
        level=logging_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if env_file:
        logger.debug("Loading environment from file: %s", env_file)
        load_dotenv(env_file)
    else:
        load_dotenv()


@main.command("soak")
@click.option("--workers", default=4, show_default=True, help="Number of fetching threads")
@click.option("--keys", default=16, show_default=True, help="Size of the key space")
@click.option("--duration", default=2.0, show_default=True, help="Seconds to run")
@click.option("--min-ttl", type=float, default=None, help="Grace period in seconds (default: WEAKCACHE_MIN_TTL_SECONDS)")
@click.option("--max-ttl", type=float, default=None, help="Max lifetime in seconds (default: WEAKCACHE_MAX_TTL_SECONDS)")
@click.option(
    "--gc-interval",
    type=float,
    default=None,
    help="Sweep interval in seconds (default: WEAKCACHE_GC_INTERVAL_SECONDS)",
)
def soak_command(
    workers: int,
    keys: int,
    duration: float,
    min_ttl: float | None,
    max_ttl: float | None,
    gc_interval: float | None,
) -> None:
    """Fetch and drop handles from several threads, then report record counts."""
    from .config import load_config
    from .soak import run_soak

    config = load_config()
    try:
        cache = Cache(gc_interval if gc_interval is not None else config.gc_interval_seconds)
    except InvalidDurationError as exc:
        raise click.BadParameter(str(exc), param_hint="--gc-interval") from exc

    with cache:
        try:
            result = run_soak(
                cache,
                workers=workers,
                keys=max(1, keys),
                duration_seconds=duration,
                min_ttl=min_ttl if min_ttl is not None else config.min_ttl_seconds,
                max_ttl=max_ttl if max_ttl is not None else config.max_ttl_seconds,
            )
        except InvalidDurationError as exc:
            raise click.BadParameter(str(exc), param_hint=f"--{exc.name.replace('_', '-')}") from exc

    click.echo(f"fetches:            {result.fetches}")
    click.echo(f"producer calls:     {result.producer_calls}")
    click.echo(f"peak records:       {result.peak_len}")
    click.echo(f"after release:      {result.len_after_release}")
    click.echo(f"after sweep:        {result.len_after_sweep}")


__all__ = ["__version__", "Cache", "Handle", "InvalidDurationError", "WeakCacheError", "main"]

if __name__ == "__main__":
    main()
