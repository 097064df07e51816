"""Command line interface for Kupler."""

import functools
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import click
from rich.console import Console

from . import __version__
from .cli_error_display import CLIErrorDisplay
from .config import ConfigManager, get_kupler_home
from .delegate import PackageManagerDelegate
from .environment import KuplerEnvironment
from .linking.alias_store import AliasStore
from .linking.directory_scanner import DirectoryScanner
from .linking.link_engine import LinkEngine
from .linking.status_reporter import StatusReporter, StatusScope
from .manifest import Manifest
from .results import ErrorKind, OperationResult
from .utils.exception_logger import ExceptionLogger
from .utils.status_display import display_status_report

logger = logging.getLogger(__name__)

APP_NAME = "kupler"

console = Console()
error_display = CLIErrorDisplay(app_name=APP_NAME)

# Commands taking a module name accept extra package manager options
PASSTHROUGH_SETTINGS = {"ignore_unknown_options": True}


def split_args(args: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split raw command arguments into positionals and options."""
    positionals = [arg for arg in args if not arg.startswith("-")]
    options = [arg for arg in args if arg.startswith("-")]
    return positionals, options


def report_unexpected_errors(f):
    """Log faults the commands cannot categorise and exit with status 1."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            return f(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, click.Abort):
            raise
        except Exception as e:
            exception_logger = ExceptionLogger.initialize(get_kupler_home() / "logs")
            log_path = exception_logger.log_exception(
                e, context={"command": ctx.command_path, "argv": sys.argv[1:]}
            )
            error_display.display_unexpected(
                e, show_technical_details=ctx.obj.get("show_stack", False)
            )
            error_display.console.print(f"Details written to {log_path}", style="dim")
            ctx.exit(1)

    return wrapper


def _environment(ctx) -> KuplerEnvironment:
    return ctx.obj["environment"]


def _delegate(ctx) -> PackageManagerDelegate:
    return PackageManagerDelegate(_environment(ctx).package_manager)


def _build_engine(ctx) -> LinkEngine:
    environment = _environment(ctx)
    manifest = Manifest.load(environment.install_root)
    return LinkEngine(
        environment=environment,
        manifest=manifest,
        alias_store=ctx.obj["alias_store"],
        delegate=_delegate(ctx),
        global_pool=environment.global_pool(),
    )


def _finish(
    ctx,
    result: OperationResult,
    command: str,
    module_name: Optional[str] = None,
    hint: Optional[str] = None,
) -> None:
    """Print the outcome of an operation; a failure exits with status 1."""
    if not result.success:
        error_display.display_error(
            result,
            command=command,
            module_name=module_name,
            show_technical_details=ctx.obj.get("show_stack", False),
        )
        ctx.exit(1)

    error_display.display_warnings(result.warnings)
    if result.message:
        console.print(f"[green]success[/green] {result.message}", highlight=False)
    if hint:
        console.print(f"[blue]info[/blue] {hint}", highlight=False)


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "-c",
    type=click.Path(dir_okay=False),
    help="Config file path (default: ~/.kupler/conf.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--show-stack",
    is_flag=True,
    help="Print the underlying traceback when an operation fails",
)
@click.version_option(version=__version__, prog_name=APP_NAME)
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool, show_stack: bool):
    """Link globally published node modules into projects under any name.

    \b
    WORKFLOW:
      1. kupler install react16@npm:react@16.14.1   # install into kupler
      2. kupler link react16                        # publish to the global pool
      3. kupler use react16 react                   # use it in a project as "react"

    \b
    CONFIGURATION:
      Config file: ~/.kupler/conf.json
      • links: remembered aliases per project
      • showStack: print tracebacks on failure
      • installRoot / globalDir / packageManager: location overrides

    \b
    EXAMPLES:
      kupler install react
      kupler link react
      kupler use react
      kupler use react16 react     # use react16 linked as react
      kupler status --global

    For detailed help on any command, use: kupler COMMAND --help
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    config_manager = ConfigManager(Path(config)) if config else ConfigManager()
    alias_store = AliasStore(config_manager)
    kupler_config = alias_store.load()
    environment = KuplerEnvironment.from_config(kupler_config)

    ctx.obj["alias_store"] = alias_store
    ctx.obj["environment"] = environment
    ctx.obj["show_stack"] = show_stack or kupler_config.show_stack

    if verbose:
        console.print(f"📁 Install root: {environment.install_root}", style="dim")
        console.print(f"📦 Package manager: {environment.package_manager}", style="dim")

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _publish_command(ctx, command: str, args: Sequence[str]) -> None:
    positionals, options = split_args(args)
    module_name = positionals[0] if positionals else None

    if len(positionals) > 1:
        alias_name = positionals[1]
        error_display.display_warnings(
            [
                f"Alias {alias_name} is not valid for command `{command}`, did you "
                f"mean to run: `{APP_NAME} use {module_name} {alias_name}`?"
            ]
        )
        ctx.exit(1)

    engine = _build_engine(ctx)
    operation = engine.link if command == "link" else engine.unlink
    result = operation(module_name, options)

    next_command = "use" if command == "link" else "unuse"
    _finish(
        ctx,
        result,
        command,
        module_name,
        hint=(
            f'you can now run `{APP_NAME} {next_command} "{module_name}"` in '
            f"projects you wish to {next_command} this resource with."
        ),
    )


def _consume_command(ctx, command: str, args: Sequence[str]) -> None:
    positionals, options = split_args(args)
    module_name = positionals[0] if positionals else None
    alias_name = positionals[1] if len(positionals) > 1 else None

    engine = _build_engine(ctx)
    operation = engine.use if command == "use" else engine.unuse
    result = operation(module_name, alias_name, Path.cwd(), options)

    if command == "use":
        hint = (
            f'you can now run `{APP_NAME} unuse "{module_name}"` in projects you '
            "wish to unuse this resource with."
        )
    else:
        hint = (
            f'you can now run `{APP_NAME} use "{module_name}"` in projects you '
            "wish to reuse this resource with."
        )
    _finish(ctx, result, command, module_name, hint=hint)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def link(ctx, args: Tuple[str, ...]):
    """Publish a module installed in kupler to the global pool.

    \b
    Modules installed as aliases (e.g. "react16": "npm:react@16.14.1") are
    linked by hand; all others go through `npm link` / `yarn link`.
    """
    _publish_command(ctx, "link", args)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def unlink(ctx, args: Tuple[str, ...]):
    """Withdraw a published module from the global pool."""
    _publish_command(ctx, "unlink", args)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def use(ctx, args: Tuple[str, ...]):
    """Link a published module into the current project.

    \b
    USAGE:
      kupler use MODULE [ALIAS]

    An alias is remembered for this project and reused by later calls.
    """
    _consume_command(ctx, "use", args)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def unuse(ctx, args: Tuple[str, ...]):
    """Remove a used module (and its remembered alias) from the current project."""
    _consume_command(ctx, "unuse", args)


def _status_command(ctx, show_global: bool) -> None:
    environment = _environment(ctx)
    global_pool = environment.global_pool()

    if global_pool is None:
        _finish(
            ctx,
            OperationResult.fail(
                ErrorKind.POOL_UNAVAILABLE,
                "Failed to locate the global directory for linked modules.",
            ),
            "status",
        )
        return

    manifest = Manifest.load(environment.install_root)
    reporter = StatusReporter(
        manifest,
        global_pool,
        scanner=DirectoryScanner(environment.install_root, manifest.names),
    )
    scope = StatusScope.ALL_GLOBAL if show_global else StatusScope.DECLARED_ONLY
    display_status_report(reporter.report(scope), console)


@cli.command()
@click.option(
    "--global", "-g", "show_global", is_flag=True, help="Show every global module"
)
@click.pass_context
@report_unexpected_errors
def status(ctx, show_global: bool):
    """List kupler modules with their symbolic/linked status."""
    _status_command(ctx, show_global)


@cli.command()
@click.option(
    "--global", "-g", "show_global", is_flag=True, help="Show every global module"
)
@click.pass_context
@report_unexpected_errors
def show(ctx, show_global: bool):
    """Alias for status."""
    _status_command(ctx, show_global)


def _install_command(ctx, args: Sequence[str]) -> None:
    environment = _environment(ctx)
    environment.ensure_install_root()
    result = _delegate(ctx).install(args, environment.install_root)
    _finish(ctx, result, "install")


def _uninstall_command(ctx, args: Sequence[str]) -> None:
    environment = _environment(ctx)
    result = _delegate(ctx).uninstall(args, environment.install_root)
    _finish(ctx, result, "uninstall")


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def install(ctx, args: Tuple[str, ...]):
    """Install a package into kupler (forwarded to npm/yarn)."""
    _install_command(ctx, args)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def add(ctx, args: Tuple[str, ...]):
    """Alias for install."""
    _install_command(ctx, args)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def uninstall(ctx, args: Tuple[str, ...]):
    """Uninstall a package from kupler (forwarded to npm/yarn)."""
    _uninstall_command(ctx, args)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def remove(ctx, args: Tuple[str, ...]):
    """Alias for uninstall."""
    _uninstall_command(ctx, args)


@cli.command(context_settings=PASSTHROUGH_SETTINGS)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
@report_unexpected_errors
def upgrade(ctx, args: Tuple[str, ...]):
    """Upgrade kupler's modules (yarn upgrade-interactive / npm-check-updates)."""
    environment = _environment(ctx)
    result = _delegate(ctx).upgrade(args, environment.install_root)
    _finish(ctx, result, "upgrade")


@cli.command("open")
@click.pass_context
@report_unexpected_errors
def open_command(ctx):
    """Open the directory where global links are stored."""
    global_pool = _environment(ctx).global_pool()
    if global_pool is None:
        _finish(
            ctx,
            OperationResult.fail(
                ErrorKind.POOL_UNAVAILABLE,
                "Failed to locate the global directory for linked modules.",
            ),
            "open",
        )
        return

    click.launch(str(global_pool))


@cli.command()
@click.pass_context
def path(ctx):
    """Display kupler's install root."""
    click.echo(str(_environment(ctx).install_root))


@cli.command()
@click.pass_context
@report_unexpected_errors
def prefix(ctx):
    """Display the package manager's global prefix."""
    global_prefix = _environment(ctx).global_prefix()
    click.echo(str(global_prefix) if global_prefix else "")


@cli.command()
def version():
    """Display kupler's version."""
    click.echo(__version__)


@cli.command("help")
@click.pass_context
def help_command(ctx):
    """Display the kupler menu."""
    click.echo(ctx.parent.get_help())


def main():
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n❌ Interrupted by user", style="red")
        sys.exit(1)


if __name__ == "__main__":
    main()
