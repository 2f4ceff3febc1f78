"""Placeholder expansion for review report templates.

Templates are plain text read line by line. Each `{{ NAME }}` token is
replaced either by a field of the ReviewRecord or by the HTML produced by a
formatter function.
"""

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from ..core.errors import TemplateError
from ..core.models import ReviewField, ReviewRecord

TOKEN_START = "{{"
TOKEN_END = "}}"


@dataclass(frozen=True)
class DirectField:
    """Token replaced by a ReviewRecord attribute."""

    attribute: str


@dataclass(frozen=True)
class Formatter:
    """Token replaced by the output of a function of the ReviewRecord."""

    function: Callable[[ReviewRecord], str]


Symbol = DirectField | Formatter


def _is_selected(index: int, response: Any) -> bool:
    if isinstance(response, list):
        return any(_is_selected(index, item) for item in response)
    if isinstance(response, bool) or response is None:
        return False
    try:
        return int(response) == index
    except (TypeError, ValueError):
        return False


def _render_field(field: ReviewField) -> str:
    parts = [
        "<li>",
        f"\n      <h3>{field.question}</h3>",
        f'\n      <div class="question-description">{field.description}</div>\n    ',
    ]
    if field.possible_responses is not None:
        parts.append('<ol class="options">')
        for index, option in enumerate(field.possible_responses):
            if _is_selected(index, field.response):
                parts.append(f'<li class="option-selected">{option}</li>')
            else:
                parts.append(f"<li>{option}</li>")
        parts.append("</ol>")
    else:
        text = "" if field.response is None else str(field.response)
        text = text.replace("\n", "<br>")
        parts.append(f'<div class="comment-text">{text}</div>')
    parts.append("</li>")
    return "".join(parts)


def render_responses(record: ReviewRecord) -> str:
    """Render the review's fields as list items, marking selected options."""
    return "".join(_render_field(field) for field in record.fields)


def render_authors(record: ReviewRecord) -> str:
    return f'<p class="authors">Authors: <strong>{", ".join(record.authors)}</strong></p>'


SYMBOLS: dict[str, Symbol] = {
    "REVIEW_ID": DirectField("review_id"),
    "ARTICLE_ID": DirectField("submission_id"),
    "SUBMISSION_DATE": DirectField("date_completed"),
    "ARTICLE_TITLE": DirectField("article_title"),
    "FORM_RESPONSES": Formatter(render_responses),
    "RECOMMENDATION": DirectField("recommendation"),
    "CURRENT_DATE": DirectField("date_generated"),
    "JOURNAL_TITLE": DirectField("journal_title"),
    "REVIEWER_NAME": DirectField("reviewer_name"),
    "AUTHORS": Formatter(render_authors),
}


def resolve_symbol(name: str, record: ReviewRecord, symbols: Mapping[str, Symbol], line: str = "") -> str:
    symbol = symbols.get(name)
    if isinstance(symbol, DirectField):
        return str(getattr(record, symbol.attribute))
    if isinstance(symbol, Formatter):
        return symbol.function(record)
    raise TemplateError(name, line)


def expand_line(line: str, record: ReviewRecord, symbols: Mapping[str, Symbol] = SYMBOLS) -> str:
    """Replace every `{{ NAME }}` token of a line, left to right.

    A `{{` without a closing `}}` is kept as literal text.

    Raises:
        TemplateError: If a token names no known symbol
    """
    if TOKEN_START not in line:
        return line

    out = []
    cursor = 0
    while True:
        start = line.find(TOKEN_START, cursor)
        if start < 0:
            break
        end = line.find(TOKEN_END, start + len(TOKEN_START))
        if end < 0:
            break
        name = line[start + len(TOKEN_START) : end].strip()
        out.append(line[cursor:start])
        out.append(resolve_symbol(name, record, symbols, line))
        cursor = end + len(TOKEN_END)
    out.append(line[cursor:])
    return "".join(out)


def expand_template(
    lines: Iterable[str], record: ReviewRecord, symbols: Mapping[str, Symbol] = SYMBOLS
) -> Iterator[str]:
    """Expand template lines; line endings are left to the caller."""
    for line in lines:
        yield expand_line(line, record, symbols)
