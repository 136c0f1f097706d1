# projects/versioning.py
"""
Per-type version numbering.

Raw and edited files are numbered independently: raw from 0, edited from 1.
Rows written before the raw/edited tag existed have `type = NULL`; they are
read as edited when version_number > 0 and raw otherwise.
"""
from typing import Optional

from django.db.models import Max, Q

RAW = "raw"
EDITED = "edited"

VERSION_TYPES = (RAW, EDITED)

FIRST_VERSION_NUMBER = {
    RAW: 0,
    EDITED: 1,
}


def normalize_version_type(raw_type: Optional[str], version_number: int) -> str:
    """
    Map a stored `type` value (possibly missing) onto RAW / EDITED.
    """
    if raw_type in VERSION_TYPES:
        return raw_type
    return EDITED if (version_number or 0) > 0 else RAW


def type_filter(version_type: str) -> Q:
    """
    ORM filter selecting rows of `version_type`, legacy untyped rows included.
    """
    if version_type == EDITED:
        legacy = Q(type__isnull=True, version_number__gt=0)
    else:
        legacy = Q(type__isnull=True, version_number=0)
    return Q(type=version_type) | legacy


def next_version_number(versions_qs, version_type: str) -> int:
    """
    Next number for `version_type` given a queryset of a project's versions.

    raw:    number of existing raw versions
    edited: highest existing edited number + 1, starting at 1
    """
    scoped = versions_qs.filter(type_filter(version_type))
    if version_type == RAW:
        return scoped.count()

    highest = scoped.aggregate(highest=Max("version_number"))["highest"]
    if highest is None:
        return FIRST_VERSION_NUMBER[EDITED]
    return max(highest + 1, FIRST_VERSION_NUMBER[EDITED])
