import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from ..core.config import ExportContext
from ..core.models import ReviewRecord
from ..render.template import expand_template
from ..utils.log import bound_review, get_logger

log = get_logger(__name__)


@dataclass
class ExportSummary:
    reports_written: int = 0
    files_copied: int = 0


def report_path(output_dir: Path, review_id: int) -> Path:
    return output_dir / f"Review_{review_id}.html"


def attachment_path(output_dir: Path, review_id: int, stored_path: str) -> Path:
    """Target of a copied attachment; the review id keeps names from different reviews apart."""
    return output_dir / f"Review_{review_id}_{PurePosixPath(stored_path).name}"


def write_report(ctx: ExportContext, record: ReviewRecord) -> Path:
    """Write the expanded template for one review. The output directory must exist."""
    target = report_path(ctx.output_dir, record.review_id)
    with (
        open(ctx.template_path, encoding="utf-8") as template,
        open(target, "w", encoding="utf-8") as out,
    ):
        lines = (line.rstrip("\r\n") for line in template)
        for line in expand_template(lines, record):
            out.write(line + "\n")
    log.info("report_written", review_id=record.review_id, path=str(target))
    return target


def copy_attachments(ctx: ExportContext, record: ReviewRecord) -> list[Path]:
    """Copy the review's attachments from the OJS files directory next to its report."""
    copied = []
    for stored_path in record.files:
        source = ctx.files_dir / stored_path
        target = attachment_path(ctx.output_dir, record.review_id, stored_path)
        shutil.copyfile(source, target)
        log.debug("attachment_copied", review_id=record.review_id, source=str(source), target=str(target))
        copied.append(target)
    return copied


def export_reviews(ctx: ExportContext, records: Iterable[ReviewRecord]) -> ExportSummary:
    """Write every report first, then copy every review's attachments."""
    records = list(records)
    summary = ExportSummary()
    log.info("exporting_reviews", count=len(records), path=str(ctx.output_dir))

    for record in records:
        with bound_review(record.review_id):
            write_report(ctx, record)
        summary.reports_written += 1

    for record in records:
        with bound_review(record.review_id):
            summary.files_copied += len(copy_attachments(ctx, record))

    log.info(
        "export_completed",
        reports_written=summary.reports_written,
        files_copied=summary.files_copied,
        path=str(ctx.output_dir),
    )
    return summary
