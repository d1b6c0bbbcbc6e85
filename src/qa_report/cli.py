"""
QA Report Command Line Interface

Main entry point for the qa-report CLI.
"""

import dataclasses
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from qa_report.exceptions import QAReportError, get_error_code
from qa_report.logging_config import get_logger, setup_logging

console = Console()
err_console = Console(stderr=True)


@click.command(
    context_settings={
        "help_option_names": ["-h", "--help"],
        "ignore_unknown_options": True,
        "allow_extra_args": True,
    }
)
@click.version_option(package_name="qa-sprint-report")
@click.option("--sprint", "-s", help="Sprint name, path or id (default: the current sprint)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML config file")
@click.option("--env-file", type=click.Path(dir_okay=False), help=".env file to load (default: ./.env)")
@click.option("--output-dir", type=click.Path(file_okay=False), help="Directory for reports/ and templates/")
@click.option("--dry-run", is_flag=True, help="Render and write the report without publishing to Confluence")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write debug logs to this file")
@click.pass_context
def main(ctx, sprint, config_path, env_file, output_dir, dry_run, verbose, log_file):
    """Generate the QA report for a sprint and publish it to Confluence.

    Examples:
        qa-report                      # Current sprint
        qa-report --sprint "Sprint 42" # A specific sprint
        qa-report -s 42 --dry-run      # Write locally only
    """
    from qa_report.config import load_settings
    from qa_report.runner import run_report
    from qa_report.ui import render_rows_table

    setup_logging(
        level=logging.DEBUG if verbose else None,
        log_file=Path(log_file) if log_file else None,
    )
    logger = get_logger("cli")

    for arg in ctx.args:
        logger.warning(f"Ignoring unknown argument: {arg}")

    try:
        settings = load_settings(
            config_path=Path(config_path) if config_path else None,
            env_file=Path(env_file) if env_file else None,
        )
        if output_dir:
            settings = dataclasses.replace(settings, output_dir=Path(output_dir))

        result = run_report(settings, sprint=sprint, dry_run=dry_run)
    except QAReportError as e:
        err_console.print("[red]Failed to generate QA report:[/red]")
        err_console.print(escape(str(e)))
        sys.exit(get_error_code(e))
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        err_console.print("[red]Failed to generate QA report:[/red]")
        err_console.print(escape(str(e)))
        sys.exit(1)

    if not result.completed:
        console.print(result.message)
        return

    render_rows_table(result.rows, console)
    console.print(f"Report ready at {escape(str(result.report_path))}", soft_wrap=True)
    if result.page:
        console.print(f"Confluence page URL: {escape(result.page.url)}", soft_wrap=True)


if __name__ == "__main__":
    main()
