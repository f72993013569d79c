"""
Profile Service — Primary-photo replacement policy.

Decides what becomes the primary photo when one of a user's photos is
removed.  The outcome is an explicit :class:`PrimaryPhotoDecision` so that
"no photo left" is a state callers must handle rather than an index error.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Sequence


class DecisionKind(str, enum.Enum):
    KEEP = "keep"          # current primary survives the removal
    REPLACE = "replace"    # another photo takes over
    NONE = "none"          # nothing left to show


@dataclass(frozen=True)
class PrimaryPhotoDecision:
    kind: DecisionKind
    path: str | None = None

    @property
    def changes_reference(self) -> bool:
        return self.kind is not DecisionKind.KEEP


def is_primary(current_primary: str | None, photo: Any) -> bool:
    """True if ``photo`` is the one referenced by ``current_primary``.

    The reference is a path, so it matches either the photo's URL exactly
    or contains the photo id.
    """
    if not current_primary:
        return False
    return current_primary == photo.url or str(photo.id) in current_primary


def select_primary_after_removal(
    current_primary: str | None,
    photos: Sequence[Any],
    removed: Any,
) -> PrimaryPhotoDecision:
    """Pick the primary photo that should remain after ``removed`` is deleted.

    ``photos`` is the user's photo list as stored, still including
    ``removed``.  When a replacement is needed the first remaining photo in
    listing order wins, so removing the first-listed photo promotes the
    second-listed one.
    """
    if current_primary and not is_primary(current_primary, removed):
        return PrimaryPhotoDecision(DecisionKind.KEEP, current_primary)

    remaining = [p for p in photos if p.id != removed.id]
    if not remaining:
        return PrimaryPhotoDecision(DecisionKind.NONE)
    return PrimaryPhotoDecision(DecisionKind.REPLACE, remaining[0].url)
