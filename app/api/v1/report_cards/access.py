"""
Legacy parent-access marker.

Older rows flagged parent access by appending "[PARENT_ACCESS_ENABLED_<epoch ms>]"
to headteacher_comment. Access now lives in ReportCard.parent_access_enabled_at;
these helpers read and remove the old token.
"""

import re
from datetime import datetime, timezone
from typing import Optional

LEGACY_MARKER_RE = re.compile(r"\s*\[PARENT_ACCESS_ENABLED_(\d+)\]")


def parse_legacy_marker(comment: Optional[str]) -> Optional[datetime]:
    """Timestamp carried by the first marker in the comment, or None."""
    if not comment:
        return None
    match = LEGACY_MARKER_RE.search(comment)
    if not match:
        return None
    return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)


def strip_legacy_marker(comment: Optional[str]) -> Optional[str]:
    """Comment with every marker removed. None when nothing but markers remains."""
    if comment is None:
        return None
    cleaned = LEGACY_MARKER_RE.sub("", comment).strip()
    return cleaned or None


def is_visible_to_parent(card) -> bool:
    return bool(card.is_approved) and card.parent_access_enabled_at is not None
