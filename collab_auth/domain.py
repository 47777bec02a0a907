"""Defines identity concepts shared by the Collabrix services."""

from typing import Any, Optional, NamedTuple, List, FrozenSet, Iterable
from datetime import datetime
from pytz import UTC

import logging

logger = logging.getLogger(__name__)

ROLE_PREFIX = 'ROLE_'


def normalize_role(name: str) -> str:
    """
    Normalize a role name for storage and comparison.

    Role names are upper-cased, and the ``ROLE_`` prefix used by some identity
    providers is dropped so that ``role_admin`` and ``ADMIN`` are the same
    role.
    """
    name = name.strip().upper()
    if name.startswith(ROLE_PREFIX):
        name = name[len(ROLE_PREFIX):]
    return name


class UserRegistration(NamedTuple):
    """Data submitted by a prospective user at registration time."""

    username: str
    """Slug-like username. Immutable once the account exists."""

    email: str
    """Primary e-mail address."""

    password: str
    """Password (as entered). Never persisted or logged in this form."""

    first_name: str
    last_name: Optional[str] = None

    country_code: str = ''
    """Telephone country code, e.g. ``+91``."""

    contact_no: str = ''
    organization: Optional[str] = None


class Role(NamedTuple):
    """A named permission grouping."""

    name: str
    """Normalized role name; see :func:`normalize_role`."""

    role_id: Optional[int] = None
    """Unique identifier. If ``None``, the role has not been persisted."""

    system_defined: bool = False
    """System-defined roles can never be deleted."""

    deleted: bool = False


class User(NamedTuple):
    """Represents a user account and its role memberships."""

    username: str
    email: str

    user_id: Optional[str] = None
    """Stable, immutable identifier. If ``None``, the user does not exist."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country_code: Optional[str] = None
    contact_no: Optional[str] = None
    organization: Optional[str] = None

    active: bool = True
    deleted: bool = False

    verified: bool = False
    """Whether or not the user's e-mail address has been verified."""

    roles: List[str] = []
    """Names of the roles assigned to this user, sorted."""

    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class RefreshToken(NamedTuple):
    """An opaque, revocable credential used to obtain new access tokens."""

    token_id: str
    user_id: str
    token: str
    expires: datetime

    @property
    def expired(self) -> bool:
        """A token is expired once its expiry lies strictly in the past."""
        return self.expires < datetime.now(tz=UTC)


class Principal(NamedTuple):
    """The authenticated identity produced by authentication or a token."""

    username: str
    roles: FrozenSet[str] = frozenset()
    user_id: Optional[str] = None

    def has_role(self, role: str) -> bool:
        """Check whether the principal holds ``role``."""
        return normalize_role(role) in self.roles

    def primary_role(self, default: str) -> str:
        """
        Get a single representative role.

        When several roles are assigned the lexicographically first one wins,
        so that the choice does not depend on storage order. ``default`` is
        returned when the principal has no roles at all.
        """
        if not self.roles:
            return default
        return sorted(self.roles)[0]


class TokenClaims(NamedTuple):
    """Verified contents of an access token."""

    subject: str
    roles: FrozenSet[str]
    issued_at: datetime
    expires_at: datetime
    user_id: Optional[str] = None

    def to_principal(self) -> Principal:
        """Reconstruct the :class:`.Principal` the token was issued for."""
        return Principal(username=self.subject, roles=self.roles,
                         user_id=self.user_id)


class TokenPair(NamedTuple):
    """Access and refresh tokens issued together on login or refresh."""

    access_token: str
    refresh_token: RefreshToken
    expires_in: int
    """Lifetime of the access token, in seconds."""

    user: User
    token_type: str = 'Bearer'


def role_set(names: Iterable[str]) -> FrozenSet[str]:
    """Build a normalized, immutable set of role names."""
    return frozenset(normalize_role(name) for name in names if name)


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    Child NamedTuples are cast recursively, datetimes are rendered in
    ISO-8601, and sets are rendered as sorted lists.
    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            return to_dict(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, (set, frozenset)):
            return sorted(_cast(o) for o in value)
        if isinstance(value, list):
            return [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in obj._asdict().items()}
