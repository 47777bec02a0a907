"""Profile domain classes."""

from typing import Any, List, NamedTuple, Optional, Tuple
from datetime import datetime

TRACKED_FIELDS: Tuple[str, ...] = (
    'username',
    'email',
    'first_name',
    'last_name',
    'country_code',
    'contact_no',
    'organization',
    'avatar_url',
    'bio',
    'linkedin_url',
    'github_url',
    'website_url',
)
"""Fields that count towards profile completion."""

EDITABLE_FIELDS: Tuple[str, ...] = (
    'first_name',
    'last_name',
    'country_code',
    'contact_no',
    'organization',
    'avatar_url',
    'bio',
    'linkedin_url',
    'github_url',
    'twitter_url',
    'website_url',
)
"""Fields that the owner of a profile may change."""

COMPLETE_AT = 80
"""A profile at or above this percentage is considered complete."""


class Profile(NamedTuple):
    """Extended information about a user. Keyed by the account's user ID."""

    profile_id: str
    username: str
    email: str

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country_code: Optional[str] = None
    contact_no: Optional[str] = None
    organization: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None
    website_url: Optional[str] = None

    active: bool = True
    roles: List[str] = []

    completion: int = 0
    """Percentage of :const:`TRACKED_FIELDS` that are filled in."""

    completed: bool = False

    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    last_login: Optional[datetime] = None


class Statistics(NamedTuple):
    """Aggregate figures across all profiles."""

    total: int
    active: int
    completed: int
    average_completion: int

    @property
    def inactive(self) -> int:
        return self.total - self.active


def _filled(value: Any) -> bool:
    return value is not None and str(value).strip() != ''


def completion(obj: Any) -> int:
    """
    Calculate the completion percentage of a profile.

    ``obj`` may be a :class:`.Profile` or anything else with the attributes
    named in :const:`TRACKED_FIELDS`. The result is rounded down.
    """
    filled = sum(1 for field in TRACKED_FIELDS
                 if _filled(getattr(obj, field, None)))
    return (filled * 100) // len(TRACKED_FIELDS)


def is_complete(percentage: int) -> bool:
    """Determine whether a completion percentage counts as complete."""
    return percentage >= COMPLETE_AT
