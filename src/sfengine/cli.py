from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

import click

from . import __version__
from .config import SFConfig
from .engine import SessionManager
from .env_loader import load_env_files
from .exceptions import MissingCredentialsError, SFEngineError
from .logging_config import configure_logging
from .provider import SimpleSalesforceProvider

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files()

_CREDENTIALS_HELP = (
    "Set these environment variables (or create a .env file):\n"
    "  SF_USERNAME=...              # Salesforce username\n"
    "  SF_PASSWORD=...              # password\n"
    "  SF_SECURITY_TOKEN=...        # optional; appended to the password\n"
    "  SF_ENVIRONMENT=production    # or sandbox\n"
    "  SF_API_VERSION=60.0          # optional\n"
)


def _echo_json(data: Any, pretty: bool = True) -> None:
    click.echo(json.dumps(data, indent=2 if pretty else None, default=str))


def _connect(ctx: click.Context) -> SessionManager:
    """Build the manager for this invocation and log in from env config."""
    cfg = SFConfig.from_env()
    environment = ctx.obj.get("environment") or cfg.environment
    try:
        manager = SessionManager(
            environment,
            provider=SimpleSalesforceProvider(api_version=cfg.api_version),
        )
        manager.login(cfg.credential()).unwrap()
    except MissingCredentialsError as e:
        needed = ", ".join(e.missing)
        raise click.ClickException(
            f"Missing Salesforce credentials: {needed}\n\n{_CREDENTIALS_HELP}"
        ) from e
    except SFEngineError as e:
        raise click.ClickException(str(e)) from e
    return manager


def _run(ctx: click.Context, action: Callable[[SessionManager], Any]) -> Any:
    manager = _connect(ctx)
    try:
        return action(manager)
    except SFEngineError as e:
        raise click.ClickException(str(e)) from e


def _load_records(fp) -> Any:
    try:
        return json.load(fp)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="FILE") from e


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfengine")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.option(
    "-e",
    "--environment",
    default=None,
    help="production or sandbox (default: $SF_ENVIRONMENT, else production).",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int], environment: Optional[str]) -> None:
    """sfengine CLI. Use subcommands like 'login', 'objects' or 'query'."""
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    ctx.ensure_object(dict)
    ctx.obj["environment"] = environment
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("login")
@click.pass_context
def cmd_login(ctx: click.Context) -> None:
    """Log in with the configured credentials and show the session."""
    manager = _connect(ctx)
    session = manager.login(SFConfig.from_env().credential()).unwrap()
    click.echo("Connected to Salesforce.")
    click.echo(f"  Environment  : {manager.environment}")
    click.echo(f"  Instance URL : {session.instance_url}")
    click.echo(f"  User Id      : {session.user_id}")
    click.echo(f"  Username     : {session.username}")


@cli.command("login-url")
@click.pass_context
def cmd_login_url(ctx: click.Context) -> None:
    """Print a frontdoor URL that opens the org in a browser."""
    click.echo(_run(ctx, lambda m: m.get_login_url()))


@cli.command("objects")
@click.option(
    "--all",
    "show_all",
    is_flag=True,
    help="Show all sObjects (default: only queryable).",
)
@click.pass_context
def cmd_objects(ctx: click.Context, show_all: bool) -> None:
    """List sObjects (queryable by default)."""
    sobjs = _run(ctx, lambda m: m.get_all_objects())
    names = sorted(s["name"] for s in sobjs if show_all or s.get("queryable"))
    for n in names:
        click.echo(n)


@cli.command("fields")
@click.argument("object_name", metavar="OBJECT")
@click.pass_context
def cmd_fields(ctx: click.Context, object_name: str) -> None:
    """List the fields of OBJECT as name, type and label."""
    for f in _run(ctx, lambda m: m.get_all_fields(object_name)):
        click.echo(f"{f.get('name')}\t{f.get('type')}\t{f.get('label')}")


@cli.command("describe")
@click.argument("object_name", metavar="OBJECT")
@click.option("--pretty/--compact", default=True, help="Pretty-print JSON.")
@click.pass_context
def cmd_describe(ctx: click.Context, object_name: str, pretty: bool) -> None:
    """Print the full describe of OBJECT as JSON."""
    _echo_json(_run(ctx, lambda m: m.describe_object(object_name)), pretty)


@cli.command("query")
@click.argument("soql")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
@click.option("--all", "all_pages", is_flag=True, help="Follow nextRecordsUrl and print every record.")
@click.pass_context
def cmd_query(ctx: click.Context, soql: str, pretty: bool, all_pages: bool) -> None:
    """Run a SOQL query."""
    if all_pages:
        res = _run(ctx, lambda m: m.query_all(soql))
    else:
        res = _run(ctx, lambda m: m.query(soql))
    _echo_json(res, pretty)


_records_file = click.argument("records_file", metavar="FILE", type=click.File("r"))


@cli.command("insert")
@click.argument("object_name", metavar="OBJECT")
@_records_file
@click.pass_context
def cmd_insert(ctx: click.Context, object_name: str, records_file) -> None:
    """Create records in OBJECT from a JSON FILE ('-' for stdin)."""
    records = _load_records(records_file)
    _echo_json(_run(ctx, lambda m: m.insert(records, object_name)))


@cli.command("update")
@click.argument("object_name", metavar="OBJECT")
@_records_file
@click.pass_context
def cmd_update(ctx: click.Context, object_name: str, records_file) -> None:
    """Update records (each with an Id) in OBJECT from a JSON FILE."""
    records = _load_records(records_file)
    _echo_json(_run(ctx, lambda m: m.update(records, object_name)))


@cli.command("upsert")
@click.argument("object_name", metavar="OBJECT")
@click.argument("external_id_field", metavar="EXTERNAL_ID_FIELD")
@_records_file
@click.pass_context
def cmd_upsert(ctx: click.Context, object_name: str, external_id_field: str, records_file) -> None:
    """Insert or update records in OBJECT matched on EXTERNAL_ID_FIELD."""
    records = _load_records(records_file)
    _echo_json(_run(ctx, lambda m: m.upsert(records, object_name, external_id_field)))


@cli.command("delete")
@click.argument("object_name", metavar="OBJECT")
@_records_file
@click.pass_context
def cmd_delete(ctx: click.Context, object_name: str, records_file) -> None:
    """Delete records in OBJECT; FILE holds ids or records with an Id."""
    records = _load_records(records_file)
    _echo_json(_run(ctx, lambda m: m.delete(records, object_name)))
