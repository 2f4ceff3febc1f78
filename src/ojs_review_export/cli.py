import os
from datetime import datetime
from pathlib import Path

import typer
from dotenv import load_dotenv

from .assemble import assemble_reviews
from .core.config import ExportContext, ExportSettings
from .core.errors import ReviewExportError
from .core.store import get_conn, select_reviews
from .io_.export import export_reviews
from .utils.log import get_logger, setup_logging

# Load environment variables from .env file
load_dotenv()

EXIT_NO_REVIEWS = 1
EXIT_PARTIAL = 4
EXIT_EXPORT_FAILED = 3

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

log = get_logger(__name__)


@app.command()
def export(
    path: Path | None = typer.Option(  # noqa: B008
        None,
        "--path",
        "-p",
        exists=True,
        file_okay=False,
        dir_okay=True,
        writable=True,
        help="Existing output directory (default: current directory)",
    ),
    date_from: datetime | None = typer.Option(  # noqa: B008
        None, "--from", "-f", formats=["%Y-%m-%d"], help="First completion day (needs --to)"
    ),
    date_to: datetime | None = typer.Option(  # noqa: B008
        None, "--to", "-t", formats=["%Y-%m-%d"], help="Last completion day (needs --from)"
    ),
    template: Path | None = typer.Option(  # noqa: B008
        None,
        "--template",
        exists=True,
        dir_okay=False,
        help="Report template (default: $REVIEW_TEMPLATE or ./template.html)",
    ),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Skip reviews with incomplete data instead of aborting"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress console log output (logs still written to file)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"),
) -> None:
    """Export completed OJS reviews as HTML reports with their attachments.

    Without both --from and --to, reviews completed in the last 24 hours are exported.
    """
    log_level = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO")
    log_file = setup_logging(
        log_level=log_level,
        console_output=not quiet,
        log_dir=Path(os.getenv("LOG_DIR", "logs")),
    )

    output_dir = path or Path.cwd()
    if (date_from is None) != (date_to is None):
        log.warning(
            "incomplete_date_range_ignored",
            date_from=str(date_from),
            date_to=str(date_to),
        )
        date_from = date_to = None
    if date_from is not None and date_to is not None and date_from > date_to:
        raise typer.BadParameter("--from must not be after --to")

    try:
        settings = ExportSettings.from_env()
        if template is not None:
            settings.template_path = template
        log.info("export_started", output_dir=str(output_dir), log_file=str(log_file), **settings.get_summary())

        with get_conn(settings) as conn:
            selections = select_reviews(
                conn,
                date_from.date() if date_from else None,
                date_to.date() if date_to else None,
            )
            if not selections:
                log.warning("no_reviews_found")
                typer.echo("No reviews found.")
                raise typer.Exit(code=EXIT_NO_REVIEWS)

            ctx = ExportContext.create(conn, settings, output_dir)
            records, failures = assemble_reviews(ctx, selections, keep_going=keep_going)
            summary = export_reviews(ctx, records)
    except ReviewExportError as e:
        log.error("export_failed", **e.to_dict())
        typer.echo(f"Export failed: {e.message}", err=True)
        raise typer.Exit(code=EXIT_EXPORT_FAILED) from e
    except OSError as e:
        # Files written before the failure are left in place
        log.error("export_io_failed", error=str(e), filename=str(e.filename) if e.filename else None)
        typer.echo(f"Export failed: {e}", err=True)
        raise typer.Exit(code=EXIT_EXPORT_FAILED) from e

    typer.echo(f"Exported {summary.reports_written} reviews to {output_dir} directory.")
    if failures:
        for review_id, error in failures:
            typer.echo(f"Skipped review {review_id}: {error.message}", err=True)
        raise typer.Exit(code=EXIT_PARTIAL)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
