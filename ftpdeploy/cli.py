"""CLI interface for ftp-deploy."""

import logging
from typing import Any, Optional

import click

from .config import PASSWORD_ENV_VAR, load_settings
from .exceptions import AuthFailedError, DeployConfigError
from .output import OutputFormatter
from .sync import ReconciliationLoop, RemoteSyncClient

logger = logging.getLogger(__name__)


@click.command()
@click.argument("settings_file", metavar="SETTINGS")
@click.option(
    "--watch",
    "-w",
    is_flag=True,
    help="Keep running and deploy local changes as they happen",
)
@click.option(
    "--password",
    envvar=PASSWORD_ENV_VAR,
    help=f"FTP password, overrides the endpoint URL (env: {PASSWORD_ENV_VAR})",
)
@click.option(
    "--max-cycles",
    type=click.IntRange(min=1),
    default=None,
    help="Stop watching after this many cycles",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Print the run statistics as JSON")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="ftp-deploy")
@click.pass_context
def main(
    ctx: Any,
    settings_file: str,
    watch: bool,
    password: Optional[str],
    max_cycles: Optional[int],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """Deploy local directories to an FTP server.

    SETTINGS: Path to a JSON settings file (the .json suffix may be omitted)

    Examples:
        ftp-deploy site.json            # Upload everything once
        ftp-deploy site --watch         # Deploy changes continuously
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("ftpdeploy").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    out = OutputFormatter(json_output=json, quiet=quiet)

    try:
        settings = load_settings(settings_file, password=password)
    except DeployConfigError as e:
        out.error(f"Configuration error: {e}")
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    client = RemoteSyncClient.from_settings(settings, output=out)
    loop = ReconciliationLoop(settings, client, output=out)

    try:
        if watch:
            loop.watch(max_cycles=max_cycles)
            if json:
                out.output_json({"cycles": loop.cycles})
        else:
            report = loop.run()
            if json:
                out.output_json(report.stats)
            if report.skipped or report.failed:
                ctx.exit(1)
    except KeyboardInterrupt:
        out.warning("Stopped by user")
        ctx.exit(130)
    except AuthFailedError as e:
        out.error(f"Authentication failed: {e}")
        ctx.exit(1)
