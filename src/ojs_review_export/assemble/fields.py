import json
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from ..core.errors import InvalidDataError
from ..core.models import NON_VIEWABLE_COMMENT_LABEL, VIEWABLE_COMMENT_LABEL, ReviewField
from ..utils.log import get_logger

log = get_logger(__name__)

# review_form_element_settings names mapped onto ReviewField attributes
_SETTING_ATTRIBUTES = {
    "question": "question",
    "description": "description",
    "possibleResponses": "possible_responses",
}


def decode_setting(value: Any, type_tag: str | None, key: Any = None) -> Any:
    """Decode a stored setting: JSON when tagged 'object', raw text otherwise.

    Raises:
        InvalidDataError: If an 'object' value is not valid JSON
    """
    if type_tag != "object":
        return value
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise InvalidDataError("JSON setting", key, str(e)) from e


def aggregate_fields(rows: Iterable[Mapping[str, Any]]) -> list[ReviewField]:
    """Group (field id, setting, response) rows into one ReviewField per form element.

    Fields keep the order in which their id first appears. A repeated
    setting or response for the same field overwrites the earlier one.
    """
    fields: dict[int, dict[str, Any]] = {}

    for row in rows:
        field_id = int(row["id"])
        field = fields.setdefault(field_id, {"id": field_id})
        field[row["setting_name"]] = decode_setting(row["setting_value"], row["setting_type"], field_id)
        field["response"] = decode_setting(row["response_value"], row["response_type"], field_id)

    result = []
    for field in fields.values():
        extra = sorted(k for k in field if k not in _SETTING_ATTRIBUTES and k not in ("id", "response"))
        if extra:
            log.debug("form_element_settings_ignored", field_id=field["id"], settings=extra)
        try:
            result.append(
                ReviewField(
                    id=field["id"],
                    response=field["response"],
                    **{
                        attr: field[name]
                        for name, attr in _SETTING_ATTRIBUTES.items()
                        if field.get(name) is not None
                    },
                )
            )
        except ValidationError as e:
            raise InvalidDataError("review form element", field["id"], str(e)) from e
    return result


def comment_fields(comments: Iterable[Mapping[str, Any]]) -> list[ReviewField]:
    """Turn free-form review comments into fields labelled by visibility."""
    return [
        ReviewField(
            id=0,
            description="",
            question=VIEWABLE_COMMENT_LABEL if _is_viewable(c["viewable"]) else NON_VIEWABLE_COMMENT_LABEL,
            response=c["comments"] or "",
        )
        for c in comments
    ]


def _is_viewable(flag: Any) -> bool:
    try:
        return int(flag) == 1
    except (TypeError, ValueError):
        return False
