from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any

import pymysql

from ..utils.log import get_logger
from .config import ExportSettings
from .errors import ConfigurationError, MissingDataError
from .models import ReviewSelection

log = get_logger(__name__)

# ASSOC_TYPE_REVIEW_ASSIGNMENT in OJS: files attached by a reviewer
REVIEW_ATTACHMENT_ASSOC_TYPE = 517
# COMMENT_TYPE_PEER_REVIEW: reviewer comments, assoc_id is the review id
PEER_REVIEW_COMMENT_TYPE = 1

SELECT_REVIEWS_BETWEEN_SQL = """
SELECT review_id, submission_id, recommendation, date_completed
FROM review_assignments
WHERE date_completed IS NOT NULL
AND DATE(date_completed) BETWEEN %s AND %s
ORDER BY review_id
"""

SELECT_REVIEWS_SINCE_SQL = """
SELECT review_id, submission_id, recommendation, date_completed
FROM review_assignments
WHERE date_completed IS NOT NULL
AND date_completed > %s
ORDER BY review_id
"""

CURRENT_PUBLICATION_SQL = """
SELECT current_publication_id AS id
FROM submissions
WHERE submission_id = %s
"""

ARTICLE_TITLES_SQL = """
SELECT setting_value AS value, locale
FROM publication_settings
WHERE publication_id = %s
AND setting_name = 'title'
AND setting_value <> ''
"""

JOURNAL_TITLES_SQL = """
SELECT js.setting_value AS value, js.locale AS locale
FROM journal_settings js
INNER JOIN submissions sub
ON sub.context_id = js.journal_id
WHERE sub.submission_id = %s
AND js.setting_name = 'name'
"""

AUTHOR_IDS_SQL = """
SELECT author_id AS id
FROM authors
WHERE publication_id = %s
ORDER BY seq, author_id
"""

AUTHOR_NAMES_SQL = """
SELECT given.setting_value AS given_name,
family.setting_value AS family_name,
given.locale AS locale
FROM author_settings given
INNER JOIN author_settings family
ON given.author_id = family.author_id
AND given.locale = family.locale
WHERE given.setting_name = 'givenName'
AND family.setting_name = 'familyName'
AND given.author_id = %s
"""

REVIEWER_NAMES_SQL = """
SELECT given.setting_value AS given_name,
family.setting_value AS family_name,
given.locale AS locale
FROM user_settings given
INNER JOIN user_settings family
ON given.user_id = family.user_id
AND given.locale = family.locale
WHERE given.setting_name = 'givenName'
AND family.setting_name = 'familyName'
AND given.user_id = (
    SELECT reviewer_id
    FROM review_assignments
    WHERE review_id = %s
)
"""

FORM_RESPONSES_SQL = """
SELECT
sets.review_form_element_id AS id,
sets.setting_name AS setting_name,
sets.setting_value AS setting_value,
sets.setting_type AS setting_type,
res.response_type AS response_type,
res.response_value AS response_value
FROM review_form_element_settings sets
INNER JOIN review_form_elements rfe
ON rfe.review_form_element_id = sets.review_form_element_id
INNER JOIN review_form_responses res
ON sets.review_form_element_id = res.review_form_element_id
WHERE res.review_id = %s
AND sets.locale = %s
ORDER BY rfe.seq, sets.review_form_element_id
"""

COMMENTS_SQL = """
SELECT viewable, comments
FROM submission_comments
WHERE assoc_id = %s
AND comment_type = %s
ORDER BY comment_id
"""

ATTACHMENT_PATHS_SQL = """
SELECT f.path AS path
FROM files f
INNER JOIN submission_files sf
ON sf.file_id = f.file_id
WHERE sf.assoc_type = %s
AND sf.assoc_id = %s
ORDER BY f.file_id
"""


@contextmanager
def get_conn(settings: ExportSettings) -> Generator[Any, None, None]:
    """Open the single database connection used for the whole run."""
    settings.validate()
    params: dict[str, Any] = {
        "user": settings.db_user,
        "password": settings.db_password or "",
        "database": settings.db_name,
        "charset": "utf8mb4",
    }
    if settings.db_socket:
        params["unix_socket"] = settings.db_socket
    else:
        params["host"] = settings.db_host
        params["port"] = settings.db_port

    try:
        conn = pymysql.connect(**params)
    except pymysql.err.OperationalError as e:
        log.error("database_connection_failed", error=str(e), **settings.get_summary())
        raise ConfigurationError(f"Could not connect to database: {e}") from e

    log.debug("database_connected", db_name=settings.db_name)
    try:
        yield conn
    finally:
        conn.close()
        log.debug("database_connection_closed")


def fetch_all(conn: Any, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
    """Run a query and return the rows as dicts keyed by column name."""
    cur = conn.cursor()
    try:
        cur.execute(sql, tuple(params))
        columns = [col[0] for col in cur.description or ()]
        return [dict(zip(columns, row, strict=True)) for row in cur.fetchall()]
    finally:
        cur.close()


def _require(rows: list[dict[str, Any]], lookup: str, key: Any) -> list[dict[str, Any]]:
    if not rows:
        raise MissingDataError(lookup, key)
    return rows


def select_reviews(
    conn: Any,
    date_from: date | None = None,
    date_to: date | None = None,
    now: datetime | None = None,
) -> list[ReviewSelection]:
    """Select completed reviews to export.

    Both dates filter on the completion day (inclusive); otherwise reviews
    completed within the 24 hours before `now` are selected.
    """
    if date_from is not None and date_to is not None:
        rows = fetch_all(
            conn, SELECT_REVIEWS_BETWEEN_SQL, (date_from.isoformat(), date_to.isoformat())
        )
        log.info(
            "reviews_selected",
            count=len(rows),
            date_from=date_from.isoformat(),
            date_to=date_to.isoformat(),
        )
    else:
        cutoff = (now or datetime.now()) - timedelta(days=1)
        rows = fetch_all(conn, SELECT_REVIEWS_SINCE_SQL, (cutoff.strftime("%Y-%m-%d %H:%M:%S"),))
        log.info("reviews_selected", count=len(rows), completed_after=cutoff.isoformat())

    return [ReviewSelection(**row) for row in rows]


def get_current_publication_id(conn: Any, submission_id: int) -> int:
    """A submission may have several publications; only the current one is exported."""
    rows = _require(
        fetch_all(conn, CURRENT_PUBLICATION_SQL, (submission_id,)),
        "submission",
        submission_id,
    )
    publication_id = rows[0]["id"]
    if publication_id is None:
        raise MissingDataError("current publication", submission_id)
    return int(publication_id)


def get_title_candidates(conn: Any, publication_id: int) -> list[dict[str, Any]]:
    return fetch_all(conn, ARTICLE_TITLES_SQL, (publication_id,))


def get_journal_title_candidates(conn: Any, submission_id: int) -> list[dict[str, Any]]:
    return fetch_all(conn, JOURNAL_TITLES_SQL, (submission_id,))


def get_author_ids(conn: Any, publication_id: int) -> list[int]:
    rows = _require(fetch_all(conn, AUTHOR_IDS_SQL, (publication_id,)), "authors", publication_id)
    return [int(row["id"]) for row in rows]


def get_author_name_candidates(conn: Any, author_id: int) -> list[dict[str, Any]]:
    return fetch_all(conn, AUTHOR_NAMES_SQL, (author_id,))


def get_reviewer_name_candidates(conn: Any, review_id: int) -> list[dict[str, Any]]:
    return fetch_all(conn, REVIEWER_NAMES_SQL, (review_id,))


def get_form_response_rows(conn: Any, review_id: int, locale: str) -> list[dict[str, Any]]:
    """Structured review form settings joined to this review's responses."""
    return fetch_all(conn, FORM_RESPONSES_SQL, (review_id, locale))


def get_comments(conn: Any, review_id: int) -> list[dict[str, Any]]:
    """Comments of a free-form review."""
    return fetch_all(conn, COMMENTS_SQL, (review_id, PEER_REVIEW_COMMENT_TYPE))


def get_attachment_paths(conn: Any, review_id: int) -> list[str]:
    rows = fetch_all(conn, ATTACHMENT_PATHS_SQL, (REVIEW_ATTACHMENT_ASSOC_TYPE, review_id))
    return [row["path"] for row in rows]
