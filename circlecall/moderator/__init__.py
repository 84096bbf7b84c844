"""Moderator announcements for circle talking."""

from .announcer import (
    AnnouncementGenerator,
    AnnouncementKind,
    FallbackAnnouncer,
    ModelAnnouncer,
    create_announcer,
    fallback_announcement,
)

__all__ = [
    "AnnouncementGenerator",
    "AnnouncementKind",
    "FallbackAnnouncer",
    "ModelAnnouncer",
    "create_announcer",
    "fallback_announcement",
]
