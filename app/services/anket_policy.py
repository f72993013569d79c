"""
Profile Service — Anket defaulting policy.

An anket event always carries both gender and birth date.  When an operation
supplies only one of them (or neither, at creation time) the missing value
is filled by the functions below.
"""

from __future__ import annotations

import uuid
from datetime import date

from app.config import get_settings
from app.models.user import UserGender
from app.schemas.events import AnketEvent

DEFAULT_GENDER = UserGender.FEMALE

# Stand-in for a user whose birth date has never been recorded.
UNKNOWN_BIRTH_DATE = date(1970, 1, 1)


def default_gender(gender: UserGender | None) -> UserGender:
    return gender if gender is not None else DEFAULT_GENDER


def default_birth_date(birth_date: date | None) -> date:
    return birth_date if birth_date is not None else UNKNOWN_BIRTH_DATE


def creation_birth_date() -> date:
    """Birth date announced for a freshly created user.

    Birth date cannot be collected at sign-up, so a configurable
    placeholder (``ANKET_DEFAULT_BIRTH_DATE``) is sent instead.
    """
    return get_settings().ANKET_DEFAULT_BIRTH_DATE


def anket_for_new_user(user_id: uuid.UUID, gender: UserGender | None) -> AnketEvent:
    return AnketEvent(
        user_id=user_id,
        gender=default_gender(gender),
        birth_date=creation_birth_date(),
    )


def anket_for_update(
    user_id: uuid.UUID,
    *,
    gender: UserGender | None = None,
    birth_date: date | None = None,
    stored_gender: UserGender | None = None,
    stored_birth_date: date | None = None,
) -> AnketEvent | None:
    """Decide which anket, if any, a profile update produces.

    ``gender`` / ``birth_date`` are the values supplied by the update (None
    when absent); ``stored_*`` are the values currently held for the user.
    """
    if gender is not None and birth_date is not None:
        return AnketEvent(user_id=user_id, gender=gender, birth_date=birth_date)
    if birth_date is not None:
        return AnketEvent(
            user_id=user_id,
            gender=default_gender(stored_gender),
            birth_date=birth_date,
        )
    if gender is not None:
        return AnketEvent(
            user_id=user_id,
            gender=gender,
            birth_date=default_birth_date(stored_birth_date),
        )
    return None
