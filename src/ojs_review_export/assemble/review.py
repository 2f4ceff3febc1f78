from collections.abc import Iterable
from datetime import datetime

from pydantic import ValidationError

from ..core import store
from ..core.config import ExportContext, format_date
from ..core.errors import InvalidDataError, ReviewExportError
from ..core.models import ReviewRecord, ReviewSelection, recommendation_label
from ..utils.log import bound_review, get_logger
from .fields import aggregate_fields, comment_fields
from .locale import full_name, prefer_locale

log = get_logger(__name__)


def completion_date(value: datetime | str, review_id: int | None = None) -> str:
    """Format the completion timestamp (datetime or ISO string) as M/D/YYYY."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError as e:
            raise InvalidDataError("completion date", review_id, str(e)) from e
    return format_date(value)


def assemble_review(ctx: ExportContext, selection: ReviewSelection) -> ReviewRecord:
    """Join everything the report shows for one review into a ReviewRecord.

    Raises:
        MissingDataError: If a lookup the report needs returns no usable row
        InvalidDataError: If a stored value cannot be decoded
    """
    conn = ctx.conn
    review_id = selection.review_id
    submission_id = selection.submission_id

    # Submission and publication ids differ for the same article
    publication_id = store.get_current_publication_id(conn, submission_id)

    article_title = prefer_locale(
        store.get_title_candidates(conn, publication_id),
        ctx.locale,
        lookup="article title",
        lookup_key=publication_id,
    )
    journal_title = prefer_locale(
        store.get_journal_title_candidates(conn, submission_id),
        ctx.locale,
        lookup="journal title",
        lookup_key=submission_id,
    )

    authors = [
        full_name(
            store.get_author_name_candidates(conn, author_id),
            ctx.locale,
            lookup="author name",
            lookup_key=author_id,
        )
        for author_id in store.get_author_ids(conn, publication_id)
    ]

    reviewer_name = full_name(
        store.get_reviewer_name_candidates(conn, review_id),
        ctx.locale,
        lookup="reviewer name",
        lookup_key=review_id,
    )

    # No form responses means a free-form review, stored as comments
    form_rows = store.get_form_response_rows(conn, review_id, ctx.locale)
    if form_rows:
        fields = aggregate_fields(form_rows)
        response_scheme = "review_form"
    else:
        fields = comment_fields(store.get_comments(conn, review_id))
        response_scheme = "free_form"

    files = store.get_attachment_paths(conn, review_id)

    try:
        record = ReviewRecord(
            review_id=review_id,
            submission_id=submission_id,
            publication_id=publication_id,
            date_completed=completion_date(selection.date_completed, review_id),
            date_generated=ctx.date_generated,
            recommendation=recommendation_label(selection.recommendation),
            reviewer_name=reviewer_name,
            article_title=article_title,
            journal_title=journal_title,
            authors=authors,
            fields=fields,
            files=files,
        )
    except ValidationError as e:
        raise InvalidDataError("review record", review_id, str(e)) from e

    log.debug(
        "review_assembled",
        review_id=review_id,
        submission_id=submission_id,
        publication_id=publication_id,
        response_scheme=response_scheme,
        field_count=len(fields),
        author_count=len(authors),
        file_count=len(files),
    )
    return record


def assemble_reviews(
    ctx: ExportContext,
    selections: Iterable[ReviewSelection],
    keep_going: bool = False,
) -> tuple[list[ReviewRecord], list[tuple[int, ReviewExportError]]]:
    """Assemble reviews one at a time, in selection order.

    The first failure aborts the run unless `keep_going` is set, in which
    case failed reviews are collected and skipped.

    Returns:
        Tuple of (assembled records, [(review_id, error), ...])
    """
    records: list[ReviewRecord] = []
    failures: list[tuple[int, ReviewExportError]] = []

    for selection in selections:
        with bound_review(selection.review_id):
            try:
                records.append(assemble_review(ctx, selection))
            except ReviewExportError as e:
                log.error("review_assembly_failed", **e.to_dict())
                if not keep_going:
                    raise
                failures.append((selection.review_id, e))

    log.info("reviews_assembled", count=len(records), failed=len(failures))
    return records, failures
