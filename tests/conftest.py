# tests/conftest.py
import json
import sqlite3
from pathlib import Path
from typing import Any

import pytest

from ojs_review_export.core.config import ExportContext

OJS_SCHEMA_SQL = """
CREATE TABLE review_assignments (
    review_id INTEGER PRIMARY KEY,
    submission_id INTEGER NOT NULL,
    reviewer_id INTEGER NOT NULL,
    recommendation INTEGER,
    date_completed TEXT
);
CREATE TABLE submissions (
    submission_id INTEGER PRIMARY KEY,
    context_id INTEGER NOT NULL,
    current_publication_id INTEGER
);
CREATE TABLE publication_settings (
    publication_id INTEGER NOT NULL,
    locale TEXT NOT NULL DEFAULT '',
    setting_name TEXT NOT NULL,
    setting_value TEXT
);
CREATE TABLE journal_settings (
    journal_id INTEGER NOT NULL,
    locale TEXT NOT NULL DEFAULT '',
    setting_name TEXT NOT NULL,
    setting_value TEXT,
    setting_type TEXT
);
CREATE TABLE authors (
    author_id INTEGER PRIMARY KEY,
    publication_id INTEGER NOT NULL,
    seq REAL NOT NULL DEFAULT 0
);
CREATE TABLE author_settings (
    author_id INTEGER NOT NULL,
    locale TEXT NOT NULL DEFAULT '',
    setting_name TEXT NOT NULL,
    setting_value TEXT
);
CREATE TABLE user_settings (
    user_id INTEGER NOT NULL,
    locale TEXT NOT NULL DEFAULT '',
    setting_name TEXT NOT NULL,
    setting_value TEXT
);
CREATE TABLE review_form_elements (
    review_form_element_id INTEGER PRIMARY KEY,
    seq REAL NOT NULL DEFAULT 0
);
CREATE TABLE review_form_element_settings (
    review_form_element_id INTEGER NOT NULL,
    locale TEXT NOT NULL DEFAULT '',
    setting_name TEXT NOT NULL,
    setting_value TEXT,
    setting_type TEXT NOT NULL
);
CREATE TABLE review_form_responses (
    review_form_element_id INTEGER NOT NULL,
    review_id INTEGER NOT NULL,
    response_type TEXT,
    response_value TEXT
);
CREATE TABLE submission_comments (
    comment_id INTEGER PRIMARY KEY,
    comment_type INTEGER NOT NULL DEFAULT 1,
    assoc_id INTEGER NOT NULL,
    viewable INTEGER,
    comments TEXT
);
CREATE TABLE files (
    file_id INTEGER PRIMARY KEY,
    path TEXT NOT NULL
);
CREATE TABLE submission_files (
    submission_file_id INTEGER PRIMARY KEY,
    file_id INTEGER NOT NULL,
    assoc_type INTEGER,
    assoc_id INTEGER
);
"""

LOCALE = "en_US"
STRUCTURED_REVIEW_ID = 1
FREE_FORM_REVIEW_ID = 2
ATTACHMENT_PATH = "journals/1/articles/10/manuscript.pdf"


class _Cursor:
    """sqlite3 cursor accepting the %s placeholders used by the MySQL queries."""

    def __init__(self, cur: sqlite3.Cursor) -> None:
        self._cur = cur

    def execute(self, sql: str, params: tuple[Any, ...] = ()) -> Any:
        return self._cur.execute(sql.replace("%s", "?"), params)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._cur, name)


class SqliteConnection:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def cursor(self) -> _Cursor:
        return _Cursor(self._conn.cursor())

    def close(self) -> None:
        self._conn.close()


def insert(conn: sqlite3.Connection, table: str, **values: Any) -> None:
    columns = ", ".join(values)
    marks = ", ".join("?" for _ in values)
    conn.execute(f"INSERT INTO {table} ({columns}) VALUES ({marks})", tuple(values.values()))


def _names(conn: sqlite3.Connection, table: str, key: str, ident: int, locale: str, given: str, family: str) -> None:
    insert(conn, table, **{key: ident}, locale=locale, setting_name="givenName", setting_value=given)
    insert(conn, table, **{key: ident}, locale=locale, setting_name="familyName", setting_value=family)


def _form_element(
    conn: sqlite3.Connection, element_id: int, seq: int, question: str, description: str, options: list[str] | None
) -> None:
    insert(conn, "review_form_elements", review_form_element_id=element_id, seq=seq)
    settings = [("question", question, "string"), ("description", description, "string")]
    if options is not None:
        settings.append(("possibleResponses", json.dumps(options), "object"))
    for name, value, type_tag in settings:
        insert(
            conn,
            "review_form_element_settings",
            review_form_element_id=element_id,
            locale=LOCALE,
            setting_name=name,
            setting_value=value,
            setting_type=type_tag,
        )
    # Translation that must not leak into the en_US export
    insert(
        conn,
        "review_form_element_settings",
        review_form_element_id=element_id,
        locale="fr_CA",
        setting_name="question",
        setting_value=f"FR {question}",
        setting_type="string",
    )


def seed_ojs(conn: sqlite3.Connection) -> None:
    """One submission with a structured review and a free-form review.

    The form shows element 9 first, so on-screen order differs from id order.
    """
    insert(conn, "journal_settings", journal_id=1, locale=LOCALE, setting_name="name", setting_value="Journal of Tests", setting_type="string")
    insert(conn, "submissions", submission_id=10, context_id=1, current_publication_id=100)

    # Earlier publication of the same submission
    insert(conn, "publication_settings", publication_id=99, locale=LOCALE, setting_name="title", setting_value="Old Title")
    insert(conn, "publication_settings", publication_id=100, locale="fr_CA", setting_name="title", setting_value="Titre")
    insert(conn, "publication_settings", publication_id=100, locale=LOCALE, setting_name="title", setting_value="Current Title")

    insert(conn, "authors", author_id=1000, publication_id=100, seq=2)
    insert(conn, "authors", author_id=1001, publication_id=100, seq=1)
    _names(conn, "author_settings", "author_id", 1000, "fr_CA", "Ada", "Lovelace-FR")
    _names(conn, "author_settings", "author_id", 1000, LOCALE, "Ada", "Lovelace")
    _names(conn, "author_settings", "author_id", 1001, LOCALE, "Alan", "Turing")

    _names(conn, "user_settings", "user_id", 5, LOCALE, "Jane", "Doe")

    insert(conn, "review_assignments", review_id=STRUCTURED_REVIEW_ID, submission_id=10, reviewer_id=5, recommendation=1, date_completed="2024-01-15 10:30:00")
    insert(conn, "review_assignments", review_id=FREE_FORM_REVIEW_ID, submission_id=10, reviewer_id=5, recommendation=6, date_completed="2024-01-16 09:00:00")

    _form_element(conn, 7, 2, "Is the method sound?", "Pick one", ["Yes", "No"])
    _form_element(conn, 8, 3, "Strengths", "Pick any", ["Novelty", "Clarity", "Rigor"])
    _form_element(conn, 9, 1, "Remarks", "", None)
    insert(conn, "review_form_responses", review_form_element_id=7, review_id=STRUCTURED_REVIEW_ID, response_type="int", response_value="0")
    insert(conn, "review_form_responses", review_form_element_id=8, review_id=STRUCTURED_REVIEW_ID, response_type="object", response_value="[0, 1]")
    insert(conn, "review_form_responses", review_form_element_id=9, review_id=STRUCTURED_REVIEW_ID, response_type="string", response_value="Line one\nLine two")

    insert(conn, "submission_comments", comment_id=1, comment_type=1, assoc_id=FREE_FORM_REVIEW_ID, viewable=1, comments="Nice work.")
    insert(conn, "submission_comments", comment_id=2, comment_type=1, assoc_id=FREE_FORM_REVIEW_ID, viewable=0, comments="Borderline.")

    insert(conn, "files", file_id=50, path=ATTACHMENT_PATH)
    insert(conn, "files", file_id=51, path="journals/1/articles/10/submission.docx")
    insert(conn, "submission_files", submission_file_id=1, file_id=50, assoc_type=517, assoc_id=FREE_FORM_REVIEW_ID)
    # Same assoc id, different association type
    insert(conn, "submission_files", submission_file_id=2, file_id=51, assoc_type=515, assoc_id=FREE_FORM_REVIEW_ID)
    conn.commit()


@pytest.fixture
def raw_db():
    conn = sqlite3.connect(":memory:")
    conn.executescript(OJS_SCHEMA_SQL)
    yield conn
    conn.close()


@pytest.fixture
def empty_db(raw_db):
    return SqliteConnection(raw_db)


@pytest.fixture
def ojs_db(raw_db):
    seed_ojs(raw_db)
    return SqliteConnection(raw_db)


@pytest.fixture
def template_file(tmp_path: Path) -> Path:
    path = tmp_path / "template.html"
    path.write_text(
        "<h1>{{ ARTICLE_TITLE }}</h1>\n"
        "<p>{{ REVIEWER_NAME }}, {{RECOMMENDATION}}</p>\n"
        "{{ AUTHORS }}\n"
        "<ol>{{ FORM_RESPONSES }}</ol>\n"
        "<footer>no tokens here</footer>\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def export_ctx(ojs_db, tmp_path: Path, template_file: Path) -> ExportContext:
    output_dir = tmp_path / "out"
    output_dir.mkdir()
    files_dir = tmp_path / "files"
    (files_dir / ATTACHMENT_PATH).parent.mkdir(parents=True)
    (files_dir / ATTACHMENT_PATH).write_bytes(b"%PDF-1.4 review")
    return ExportContext(
        conn=ojs_db,
        locale=LOCALE,
        output_dir=output_dir,
        files_dir=files_dir,
        template_path=template_file,
        date_generated="1/1/2024",
    )
