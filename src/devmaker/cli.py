# cli.py
from __future__ import annotations

import sys

import click

from devmaker import __version__
from devmaker.config import RunConfig
from devmaker.errors import ConfigError, ResolutionError
from devmaker.runner import run_all
from devmaker.ui.console import Console, set_console


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-i", "--interactive", is_flag=True, default=False, help="Ask for askable vars interactively.")
@click.option("-n", "--dry-run", is_flag=True, default=False, help="Report how the run would go without running anything.")
@click.option("-E", "--no-allow-env", is_flag=True, default=False, help="Don't read askable vars from environment variables.")
@click.option(
    "-a",
    "--ask-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="A `VARNAME=value` formatted file to read vars from.",
)
@click.option(
    "-w",
    "--with-vars",
    multiple=True,
    metavar="VARNAME=value",
    help="A var given on the command line. Repeatable.",
)
@click.option("-s", "--single-job", default=None, help="Run a single job, ignoring dependencies.")
@click.option("-e", "--force-empty-vars", is_flag=True, default=False, help="Set every askable var to an empty string.")
@click.option(
    "--allow-unresolved",
    is_flag=True,
    default=False,
    help="Run even if some askable vars could not be resolved.",
)
@click.option("--debug", is_flag=True, default=False, help="Show debug output and stack traces.")
@click.version_option(__version__, prog_name="devmaker")
@click.argument("script_root", type=click.Path(file_okay=False))
def cli(
    interactive,
    dry_run,
    no_allow_env,
    ask_file,
    with_vars,
    single_job,
    force_empty_vars,
    allow_unresolved,
    debug,
    script_root,
):
    """Apply startup scripts to a dev machine.

    SCRIPT_ROOT holds one directory per job, each with a run.<ext> file.
    """
    console = Console(debug=debug)
    set_console(console)

    try:
        config = RunConfig.from_options(
            script_root,
            with_vars=with_vars,
            ask_file=ask_file,
            force_empty_vars=force_empty_vars,
            no_allow_env=no_allow_env,
            interactive=interactive,
            allow_unresolved=allow_unresolved,
            dry_run=dry_run,
            single_job=single_job,
        )
        result = run_all(config, console=console)

    except (KeyboardInterrupt, click.Abort):
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except ConfigError as e:
        console.print_error(
            "Configuration error",
            e.message,
            details=[f"{k}: {v}" for k, v in e.details.items()],
        )
        sys.exit(1)
    except ResolutionError as e:
        console.print_error(
            "Unresolved variables",
            str(e),
            suggestion="Provide them with --with-vars, the environment, --ask-file or --interactive.",
        )
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    if result is None:
        return

    console.print_results(result.summary())
    if not result.ok:
        failure = result.failure
        console.print_error(
            "Run aborted",
            f"Job '{failure.job}' failed in its {failure.step}",
            details=[f"path: {failure.path}", f"exit code: {failure.exit_code}"],
        )
        sys.exit(1)


if __name__ == "__main__":
    cli()
