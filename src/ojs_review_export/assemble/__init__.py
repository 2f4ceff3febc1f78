"""
Review record assembly.

This package joins the OJS entities a review report shows into one
ReviewRecord per review:
- Locale-preferring selection of localized titles and names
- Aggregation of review form settings and responses into fields
- Free-form review comments as fields of the same shape
"""

from .fields import aggregate_fields, comment_fields, decode_setting
from .locale import full_name, prefer_locale
from .review import assemble_review, assemble_reviews

__all__ = [
    "aggregate_fields",
    "assemble_review",
    "assemble_reviews",
    "comment_fields",
    "decode_setting",
    "full_name",
    "prefer_locale",
]
