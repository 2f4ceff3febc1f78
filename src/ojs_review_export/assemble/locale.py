"""Locale-preferring selection among localized setting values.

OJS does not enforce metadata translations, so the value in the preferred
locale may be missing. The locale is a preference, never a filter.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from ..core.errors import MissingDataError


def _non_empty(value: Any) -> bool:
    return value is not None and str(value) != ""


def prefer_locale(
    candidates: Iterable[Mapping[str, Any]],
    locale: str,
    key: str = "value",
    lookup: str = "value",
    lookup_key: Any = None,
) -> Any:
    """Return the candidate value in `locale`, else the first non-empty one.

    Args:
        candidates: Rows with `key` and `locale` entries sharing one parent
        locale: Preferred locale, e.g. 'en_US'
        key: Name of the value column
        lookup, lookup_key: Describe the lookup in the raised error

    Raises:
        MissingDataError: If no candidate has a non-empty value
    """
    valid = [c for c in candidates if _non_empty(c.get(key))]
    for candidate in valid:
        if candidate.get("locale") == locale:
            return candidate[key]
    if valid:
        return valid[0][key]
    raise MissingDataError(lookup, lookup_key)


def full_name(
    candidates: Iterable[Mapping[str, Any]],
    locale: str,
    lookup: str = "name",
    lookup_key: Any = None,
) -> str:
    """Join the preferred (given, family) pair as 'given family'.

    Only pairs whose parts are both non-empty are considered.
    """
    pairs = [
        {"value": f"{c['given_name']} {c['family_name']}", "locale": c.get("locale")}
        for c in candidates
        if _non_empty(c.get("given_name")) and _non_empty(c.get("family_name"))
    ]
    return prefer_locale(pairs, locale, lookup=lookup, lookup_key=lookup_key)
