"""Command-line interface for Bucket Traverse."""

import logging

import click

from bucket_traverse.analysis.listing_report import analyze_listing
from bucket_traverse.config.traverse_config import TraverseConfig, load_env_vars
from bucket_traverse.consumers.csv_export import CsvExporter
from bucket_traverse.consumers.gzip_finder import GzipEncodingFinder
from bucket_traverse.consumers.ref_finder import ReferenceFinder
from bucket_traverse.exceptions import ConfigError
from bucket_traverse.sharding.planner import (
    MAX_SHARD_COUNT,
    MIN_SHARD_COUNT,
    get_shard_stats,
    plan_shards,
)
from bucket_traverse.storage.backends import StorageBackend, create_storage_backend
from bucket_traverse.traversal.orchestrator import ShardTraverser, log_progress
from bucket_traverse.traversal.stats import TraversalStats
from bucket_traverse.utils.helpers import normalize_prefix, setup_logging

logger = logging.getLogger(__name__)

_SHARD_COUNT = click.IntRange(MIN_SHARD_COUNT, MAX_SHARD_COUNT)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML config file",
)
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Credentials file (default: search for .dev.vars)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None, env_file: str | None):
    """Bucket Traverse - sharded, concurrent object-storage traversal."""
    level = "DEBUG" if verbose else "INFO"
    setup_logging(level)

    ctx.ensure_object(dict)
    try:
        config = TraverseConfig.from_yaml(config_path) if config_path else TraverseConfig()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj.setdefault("config", config)
    ctx.obj["env_file"] = env_file


def _resolve(
    ctx: click.Context, shard_count: int | None, bucket: str | None
) -> tuple[TraverseConfig, int, str]:
    config: TraverseConfig = ctx.obj["config"]
    return (
        config,
        shard_count or config.traversal.shard_count,
        bucket or config.traversal.bucket,
    )


def _get_storage(
    ctx: click.Context, shard_count: int, request_concurrency: int = 0
) -> StorageBackend:
    """Storage injected by the caller, else an S3 client from the credentials file.

    The connection pool covers every shard listing plus *request_concurrency*
    HEAD/GET requests issued by the consumer.
    """
    if ctx.obj.get("storage") is not None:
        return ctx.obj["storage"]

    config: TraverseConfig = ctx.obj["config"]
    env_file = ctx.obj.get("env_file")
    try:
        env_vars = load_env_vars([env_file] if env_file else None)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    config.apply_env_vars(env_vars)

    return create_storage_backend(
        "s3",
        endpoint_url=config.s3.endpoint_url,
        region=config.s3.region,
        access_key_id=config.s3.access_key_id,
        secret_access_key=config.s3.secret_access_key,
        max_attempts=config.s3.max_attempts,
        max_pool_connections=config.pool_size_for(shard_count, request_concurrency),
        force_path_style=config.s3.force_path_style,
    )


def _run(
    ctx: click.Context,
    storage: StorageBackend,
    bucket: str,
    prefix: str,
    shard_count: int,
    on_batch,
) -> TraversalStats:
    config: TraverseConfig = ctx.obj["config"]
    traverser = ShardTraverser(
        storage,
        bucket,
        prefix,
        shard_count=shard_count,
        page_size=config.traversal.page_size,
        progress_interval=config.traversal.progress_interval,
    )

    click.echo("=" * 70)
    click.echo(f"Bucket: {bucket}")
    click.echo(f"Prefix: {prefix}")
    click.echo(f"Shards: {len(traverser.shards)} concurrent")
    click.echo("=" * 70)

    return traverser.run(on_batch, on_progress=log_progress)


def _finish(ctx: click.Context, stats: TraversalStats) -> None:
    click.echo(stats.summary())
    if stats.total_objects == 0:
        click.echo("No keys found. Check your prefix and permissions.")
    if not stats.is_complete:
        click.echo(
            f"Error: {stats.failed_shards} of {stats.total_shards} shards failed; "
            "re-run the failed prefixes listed above.",
            err=True,
        )
        ctx.exit(1)


@main.command()
@click.argument("prefix")
@click.option("--shard-count", "-n", type=_SHARD_COUNT, default=None, help="Number of shards")
@click.pass_context
def shards(ctx: click.Context, prefix: str, shard_count: int | None):
    """Show the shard plan for PREFIX without listing anything."""
    _, shard_count, _ = _resolve(ctx, shard_count, None)
    plan = plan_shards(normalize_prefix(prefix), shard_count)
    stats = get_shard_stats(plan)

    click.echo(f"Generated {stats['total']} shard prefixes")
    for shard in plan:
        click.echo(f"  {shard.shard_id:3}  {shard.label:30} {shard.description}")


@main.command("traverse")
@click.argument("prefix")
@click.option("--output", "-o", default="files.csv", help="CSV output file")
@click.option("--shard-count", "-n", type=_SHARD_COUNT, default=None, help="Number of shards")
@click.option("--bucket", "-b", default=None, help="Bucket name")
@click.pass_context
def traverse_command(
    ctx: click.Context,
    prefix: str,
    output: str,
    shard_count: int | None,
    bucket: str | None,
):
    """List every key under PREFIX into a CSV file."""
    _, shard_count, bucket = _resolve(ctx, shard_count, bucket)
    storage = _get_storage(ctx, shard_count)

    with CsvExporter(output) as exporter:
        stats = _run(ctx, storage, bucket, normalize_prefix(prefix), shard_count, exporter)

    click.echo(f"Output saved to: {output}")
    _finish(ctx, stats)


@main.command("find-gzip")
@click.argument("prefix")
@click.option("--shard-count", "-n", type=_SHARD_COUNT, default=None, help="Number of shards")
@click.option("--bucket", "-b", default=None, help="Bucket name")
@click.pass_context
def find_gzip(ctx: click.Context, prefix: str, shard_count: int | None, bucket: str | None):
    """Find objects under PREFIX stored with gzip Content-Encoding."""
    config, shard_count, bucket = _resolve(ctx, shard_count, bucket)
    concurrency = config.consumers.head_concurrency
    storage = _get_storage(ctx, shard_count, concurrency)

    with GzipEncodingFinder(storage, bucket, concurrency=concurrency) as finder:
        stats = _run(ctx, storage, bucket, normalize_prefix(prefix), shard_count, finder)

    report = finder.report()
    click.echo(report.summary())
    if report.files:
        click.echo("SIMPLE LIST (for batch processing)")
        for path in report.simple_list():
            click.echo(path)
    else:
        click.echo("No gzip-encoded files found!")
    _finish(ctx, stats)


@main.command("find-refs")
@click.argument("prefix")
@click.option("--output", "-o", default="hlx-references.txt", help="TSV output file")
@click.option("--shard-count", "-n", type=_SHARD_COUNT, default=None, help="Number of shards")
@click.option("--bucket", "-b", default=None, help="Bucket name")
@click.pass_context
def find_refs(
    ctx: click.Context,
    prefix: str,
    output: str,
    shard_count: int | None,
    bucket: str | None,
):
    """Find HTML documents under PREFIX referencing .hlx.page / .hlx.live URLs."""
    config, shard_count, bucket = _resolve(ctx, shard_count, bucket)
    concurrency = config.consumers.get_concurrency
    storage = _get_storage(ctx, shard_count, concurrency)

    with ReferenceFinder(
        storage,
        bucket,
        output=output,
        concurrency=concurrency,
        ignored_folders=config.consumers.ignored_folders,
    ) as finder:
        stats = _run(ctx, storage, bucket, normalize_prefix(prefix), shard_count, finder)

    report = finder.report()
    click.echo(report.summary())
    if not report.files:
        click.echo("No HLX references found!")
    click.echo(f"Detailed results written to: {output}")
    _finish(ctx, stats)


@main.command()
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False), default="files.csv")
def analyze(csv_file: str):
    """Report statistics for a CSV listing written by `traverse`."""
    report = analyze_listing(csv_file)
    click.echo(f"Analyzing {csv_file}")
    click.echo(report.summary())


if __name__ == "__main__":
    main()
