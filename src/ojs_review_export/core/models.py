from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import MissingDataError

# Order matches the recommendation constants of the OJS ReviewAssignment
# class and the order shown on the review form. Do not reorder.
RECOMMENDATIONS = (
    "None",
    "Accept Submission",
    "Revisions Required",
    "Resubmit for Review",
    "Resubmit Elsewhere",
    "Decline Submission",
    "See Comments",
)

# Question labels for comments of free-form reviews
VIEWABLE_COMMENT_LABEL = "Comment for author and editor"
NON_VIEWABLE_COMMENT_LABEL = "Comment for editor only"


def recommendation_label(code: int | None) -> str:
    """Map an OJS recommendation code to its label; NULL means no recommendation."""
    if code is None:
        return RECOMMENDATIONS[0]
    code = int(code)
    if not 0 <= code < len(RECOMMENDATIONS):
        raise MissingDataError("recommendation label", code, "code out of range")
    return RECOMMENDATIONS[code]


class ReviewSelection(BaseModel):
    """One review picked by the selection query."""

    review_id: int
    submission_id: int
    recommendation: int | None = None
    date_completed: datetime | str


class ReviewField(BaseModel):
    """A review form field or a free-form comment, rendered the same way."""

    model_config = ConfigDict(frozen=True)

    id: int
    question: str = ""
    description: str = ""
    possible_responses: list[Any] | None = None
    # Selected index, list of selected indices, or free text
    response: Any = None


class ReviewRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    review_id: int
    submission_id: int
    publication_id: int

    date_completed: str
    date_generated: str
    recommendation: str

    reviewer_name: str
    article_title: str
    journal_title: str
    authors: list[str] = Field(default_factory=list)

    fields: list[ReviewField] = Field(default_factory=list)
    # Paths relative to the OJS files directory
    files: list[str] = Field(default_factory=list)
