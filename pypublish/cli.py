"""CLI interface for pypublish."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .cache import RemoteStateCache
from .compress import GzipOptions
from .config import config
from .engine import PublishEngine
from .exceptions import PublishConfigError, PublishError
from .models import FileState
from .output import OutputFormatter
from .publisher import PublishOptions, Publisher
from .reconciler import BucketReconciler, Whitelist
from .reporter import PublishReporter
from .scanner import DirectoryScanner
from .store import S3Store
from .utils import DEFAULT_FLUSH_INTERVAL, normalize_remote_key

logger = logging.getLogger(__name__)


def parse_pairs(values: tuple[str, ...], option: str) -> dict[str, str]:
    """Parse repeated NAME=VALUE options into a dict.

    Args:
        values: Raw option values
        option: Option name, used in error messages

    Returns:
        Mapping of names to values

    Raises:
        PublishConfigError: If a value has no '=' or an empty name
    """
    pairs: dict[str, str] = {}
    for value in values:
        name, sep, rest = value.partition("=")
        name = name.strip()
        if not sep or not name:
            raise PublishConfigError(f"{option} expects NAME=VALUE, got '{value}'")
        pairs[name] = rest.strip()
    return pairs


def _open_cache(
    bucket: str, cache_file: Optional[str], flush_interval: int = DEFAULT_FLUSH_INTERVAL
) -> RemoteStateCache:
    if cache_file:
        cache = RemoteStateCache(Path(cache_file), flush_interval=flush_interval)
    else:
        cache = RemoteStateCache.for_bucket(bucket, flush_interval=flush_interval)
    cache.load()
    return cache


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pypublish")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """PyPublish - Publish a local directory to an S3 bucket."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pypublish").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option("--bucket", prompt="Default bucket", help="Default bucket name")
@click.option("--region", default="", help="AWS region")
@click.option("--endpoint-url", default="", help="Endpoint of an S3 compatible service")
@click.pass_context
def init(ctx: Any, bucket: str, region: str, endpoint_url: str) -> None:
    """Save default connection settings.

    Examples:
        pypublish init --bucket my-site --region eu-west-1
    """
    out: OutputFormatter = ctx.obj["out"]

    path = config.save(
        bucket=bucket,
        region=region or None,
        endpoint_url=endpoint_url or None,
    )
    out.success(f"Configuration saved to {path}")


@main.command()
@click.argument(
    "directory", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option("--bucket", "-b", help="Target bucket (default: from config)")
@click.option("--region", help="AWS region")
@click.option("--endpoint-url", help="Endpoint of an S3 compatible service")
@click.option("--profile", help="AWS profile")
@click.option("--prefix", "-p", default="", help="Key prefix for published files")
@click.option("--force", is_flag=True, help="Upload files even if unchanged")
@click.option("--no-acl", is_flag=True, help="Do not set the public-read ACL")
@click.option(
    "--simulate",
    "--dry-run",
    "simulate",
    is_flag=True,
    help="Show what would be done without contacting the bucket",
)
@click.option("--create-only", is_flag=True, help="Never overwrite existing objects")
@click.option(
    "--sync", "sync_bucket", is_flag=True, help="Delete remote objects with no local file"
)
@click.option(
    "--whitelist",
    multiple=True,
    help="Key never deleted by --sync (repeatable)",
)
@click.option(
    "--whitelist-regex",
    multiple=True,
    help="Regular expression of keys never deleted by --sync (repeatable)",
)
@click.option(
    "--header",
    "-H",
    "headers",
    multiple=True,
    help="Extra upload header as NAME=VALUE (repeatable)",
)
@click.option("--gzip", "use_gzip", is_flag=True, help="Gzip files before upload")
@click.option("--gzip-ext", default="", help="Extension appended to gzipped files")
@click.option(
    "--gzip-smaller",
    is_flag=True,
    help="Only gzip files when the result is smaller",
)
@click.option(
    "--compress",
    multiple=True,
    help="Precompressed suffix as SUFFIX=ENCODING, e.g. .br=br (repeatable)",
)
@click.option("--cache-file", help="Cache file path (default: .pypublish-<bucket>)")
@click.option(
    "--flush-interval",
    type=int,
    default=DEFAULT_FLUSH_INTERVAL,
    help=f"Save the cache every N changes (default: {DEFAULT_FLUSH_INTERVAL})",
)
@click.option("--ignore", multiple=True, help="Glob pattern to skip (repeatable)")
@click.option(
    "--exclude-dot-files", is_flag=True, help="Skip files and folders starting with dot"
)
@click.option("--stop-on-error", is_flag=True, help="Abort on the first failed file")
@click.option(
    "--report-state",
    "report_states",
    multiple=True,
    type=click.Choice([state.value for state in FileState]),
    help="Only list files in this state (repeatable, default: all)",
)
@click.pass_context
def publish(
    ctx: Any,
    directory: Path,
    bucket: Optional[str],
    region: Optional[str],
    endpoint_url: Optional[str],
    profile: Optional[str],
    prefix: str,
    force: bool,
    no_acl: bool,
    simulate: bool,
    create_only: bool,
    sync_bucket: bool,
    whitelist: tuple[str, ...],
    whitelist_regex: tuple[str, ...],
    headers: tuple[str, ...],
    use_gzip: bool,
    gzip_ext: str,
    gzip_smaller: bool,
    compress: tuple[str, ...],
    cache_file: Optional[str],
    flush_interval: int,
    ignore: tuple[str, ...],
    exclude_dot_files: bool,
    stop_on_error: bool,
    report_states: tuple[str, ...],
) -> None:
    """Publish DIRECTORY to a bucket.

    Unchanged files are detected through a local cache of content
    fingerprints and are not uploaded again.

    Examples:
        pypublish publish ./public -b my-site
        pypublish publish ./public -b my-site --sync --whitelist robots.txt
        pypublish publish ./dist -b cdn -p assets --gzip -H "Cache-Control=max-age=3600"
        pypublish publish ./public -b my-site --dry-run
        pypublish publish ./public -b my-site --report-state create --report-state update
    """
    out: OutputFormatter = ctx.obj["out"]

    bucket = bucket or config.bucket
    if not bucket:
        out.error("No bucket given. Use --bucket or run 'pypublish init'.")
        ctx.exit(1)
        return

    try:
        options = PublishOptions(
            force=force,
            no_acl=no_acl,
            simulate=simulate,
            create_only=create_only,
            compress=parse_pairs(compress, "--compress"),
            headers=parse_pairs(headers, "--header"),
        )
        whitelist_entries = Whitelist.from_strings(whitelist, whitelist_regex)
    except PublishConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    store = S3Store(
        bucket,
        region=region or config.region,
        endpoint_url=endpoint_url or config.endpoint_url,
        profile=profile or config.profile,
    )
    cache = _open_cache(bucket, cache_file, flush_interval)

    reconciler = None
    if sync_bucket:
        reconciler = BucketReconciler(
            store,
            prefix=normalize_remote_key("", prefix) if prefix else "",
            whitelist=whitelist_entries,
            dry_run=simulate,
        )

    reporter = PublishReporter(
        out, states=[FileState(state) for state in report_states] or None
    )
    engine = PublishEngine(
        Publisher(store, cache, options),
        cache=cache,
        reconciler=reconciler,
        gzip_options=GzipOptions(ext=gzip_ext, smaller=gzip_smaller) if use_gzip else None,
        reporter=reporter,
        stop_on_error=stop_on_error,
    )
    scanner = DirectoryScanner(
        ignore_patterns=list(ignore), exclude_dot_files=exclude_dot_files
    )

    if not out.quiet:
        out.info(f"Publishing {directory} to s3://{bucket}/{prefix}")
        if simulate:
            out.info("Dry run: No changes will be made")
        out.print("")

    try:
        result = engine.run(scanner.scan(directory, key_prefix=prefix))
    except KeyboardInterrupt:
        out.warning("Publish cancelled by user")
        ctx.exit(130)
        return
    except PublishError as e:
        out.error(f"Publish failed: {e}")
        ctx.exit(1)
        return

    if out.json_output:
        stats = result.stats
        stats["failures"] = [
            {"key": failure.key, "error": str(failure.error)}
            for failure in result.failures
        ]
        out.output_json(stats)
    else:
        out.print("")
        reporter.print_summary()

    for failure in result.failures:
        out.error(f"{failure.key}: {failure.error}")

    if not result.ok:
        ctx.exit(1)


@main.group()
def cache() -> None:
    """Inspect or reset the fingerprint cache."""
    pass


@cache.command("show")
@click.option("--bucket", "-b", help="Bucket name (default: from config)")
@click.option("--cache-file", help="Cache file path (default: .pypublish-<bucket>)")
@click.pass_context
def cache_show(ctx: Any, bucket: Optional[str], cache_file: Optional[str]) -> None:
    """List cached keys and fingerprints."""
    out: OutputFormatter = ctx.obj["out"]

    bucket = bucket or config.bucket
    if not bucket and not cache_file:
        out.error("No bucket given. Use --bucket or --cache-file.")
        ctx.exit(1)
        return

    state_cache = _open_cache(bucket or "", cache_file)
    entries = state_cache.as_dict()

    if out.json_output:
        out.output_json(entries)
        return

    if not entries:
        out.info(f"Cache {state_cache.path} is empty")
        return

    for key in sorted(entries):
        out.print(f"{entries[key]}  {key}")
    out.print("")
    out.info(f"{len(entries)} cached key(s) in {state_cache.path}")


@cache.command("clear")
@click.option("--bucket", "-b", help="Bucket name (default: from config)")
@click.option("--cache-file", help="Cache file path (default: .pypublish-<bucket>)")
@click.pass_context
def cache_clear(ctx: Any, bucket: Optional[str], cache_file: Optional[str]) -> None:
    """Delete the cache file, forcing a full comparison on the next run."""
    out: OutputFormatter = ctx.obj["out"]

    bucket = bucket or config.bucket
    if not bucket and not cache_file:
        out.error("No bucket given. Use --bucket or --cache-file.")
        ctx.exit(1)
        return

    state_cache = _open_cache(bucket or "", cache_file)
    if state_cache.clear():
        out.success(f"Removed {state_cache.path}")
    else:
        out.info(f"No cache file at {state_cache.path}")


if __name__ == "__main__":
    main()
