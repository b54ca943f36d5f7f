"""CLI interface for treesync."""

import logging
from typing import Any, Callable, Optional

import click

from .config import SyncConfig, build_config
from .exceptions import ConfigError, TreeSyncError
from .output import OutputFormatter
from .stores import FTPStore
from .sync import SyncEngine, SyncResult

logger = logging.getLogger(__name__)


def create_store(config: SyncConfig) -> FTPStore:
    """Create the remote store for a configuration."""
    return FTPStore.from_config(config)


def connection_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the options shared by sync, backup and restore."""
    options = [
        click.option(
            "--config",
            "-c",
            "config_file",
            type=click.Path(dir_okay=False),
            help="Config file name (JSON or key=value)",
        ),
        click.option("--server", "-s", envvar="TREESYNC_SERVER", help="FTP server"),
        click.option(
            "--port", "-o", type=int, envvar="TREESYNC_PORT", help="FTP server port"
        ),
        click.option("--user", "-u", envvar="TREESYNC_USER", help="Account username"),
        click.option(
            "--password", "-p", envvar="TREESYNC_PASSWORD", help="User password"
        ),
        click.option("--remote", "-r", help="Remote server directory"),
        click.option(
            "--local", "-l", type=click.Path(file_okay=False), help="Local directory"
        ),
        click.option(
            "--no-tls",
            is_flag=True,
            help="Use plain FTP instead of FTP over TLS",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(
    ctx: Any,
    out: OutputFormatter,
    config_file: Optional[str],
    server: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    remote: Optional[str],
    local: Optional[str],
    no_tls: bool,
) -> SyncConfig:
    """Combine the config file and command line options into a SyncConfig."""
    try:
        return build_config(
            config_file,
            server=server,
            port=port,
            user=user,
            password=password,
            remote=remote,
            local=local,
            useTls=False if no_tls else None,
        )
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


def _run(
    ctx: Any,
    out: OutputFormatter,
    config: SyncConfig,
    action: Callable[[SyncEngine], SyncResult],
    name: str,
) -> None:
    """Connect, run an engine action and report the result."""
    if not out.quiet:
        out.info(f"SERVER [{config.server}]")
        out.info(f"SERVER PORT [{config.port}]")
        out.info(f"USER [{config.user}]")
        out.info(f"REMOTE DIRECTORY [{config.remote_directory}]")
        out.info(f"LOCAL DIRECTORY [{config.local_directory}]")
        out.print("")

    try:
        with create_store(config) as store:
            engine = SyncEngine(store, out)
            result = action(engine)
    except KeyboardInterrupt:
        out.warning(f"\n{name} cancelled by user")
        ctx.exit(130)
        return
    except TreeSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(result.to_dict())

    if not result.ok:
        ctx.exit(1)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="treesync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """treesync - keep a remote FTP directory in sync with a local directory."""
    ctx.ensure_object(dict)
    # JSON mode keeps stdout machine-readable: no progress bars or chatter
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet or json)
    ctx.obj["verbose"] = verbose

    # Configure logging based on verbose flag
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("treesync").setLevel(logging.DEBUG)
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        logging.basicConfig(level=logging.WARNING)


@main.command()
@connection_options
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.pass_context
def sync(ctx: Any, dry_run: bool, **options: Any) -> None:
    """Synchronize the remote directory with the local directory.

    New local files are uploaded, files deleted locally are removed from the
    server and local files newer than their server copy are uploaded again.
    Changes made only on the server are never copied back.

    Examples:
        treesync sync -c backup.json
        treesync sync -s ftp.example.com -u me -p secret -l ./docs -r /docs
        treesync sync -c backup.json --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx, out, **options)
    _run(ctx, out, config, lambda engine: engine.sync(config, dry_run=dry_run), "Sync")


@main.command()
@connection_options
@click.pass_context
def backup(ctx: Any, **options: Any) -> None:
    """Copy every file of the local directory to the server."""
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx, out, **options)
    _run(ctx, out, config, lambda engine: engine.backup(config), "Backup")


@main.command()
@connection_options
@click.pass_context
def restore(ctx: Any, **options: Any) -> None:
    """Copy every file of the remote directory into the local directory."""
    out: OutputFormatter = ctx.obj["out"]
    config = _load_config(ctx, out, **options)
    _run(ctx, out, config, lambda engine: engine.restore(config), "Restore")


if __name__ == "__main__":
    main()
