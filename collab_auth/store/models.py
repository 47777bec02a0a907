"""SQLAlchemy models for the credential, role, and refresh-token stores."""

from typing import Optional
from datetime import datetime
import uuid

from flask_sqlalchemy import SQLAlchemy
from pytz import UTC
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, \
    String
from sqlalchemy.orm import relationship

from .. import domain

db: SQLAlchemy = SQLAlchemy()


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored datetimes are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


user_roles = db.Table(
    'user_roles',
    Column('user_id', ForeignKey('users.user_id', ondelete='CASCADE'),
           primary_key=True),
    Column('role_id', ForeignKey('roles.role_id', ondelete='CASCADE'),
           primary_key=True),
)


class DBRole(db.Model):  # type: ignore
    """Persistence for :class:`domain.Role`."""

    __tablename__ = 'roles'

    role_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, unique=True)
    system_defined = Column(Boolean, nullable=False, default=False)
    deleted = Column(Boolean, nullable=False, default=False)
    created = Column(DateTime(timezone=True), default=_utcnow)

    def to_domain(self) -> domain.Role:
        return domain.Role(
            role_id=self.role_id,
            name=self.name,
            system_defined=bool(self.system_defined),
            deleted=bool(self.deleted)
        )


class DBUser(db.Model):  # type: ignore
    """Persistence for :class:`domain.User` and its password hash."""

    __tablename__ = 'users'

    user_id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(64), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)

    first_name = Column(String(100))
    last_name = Column(String(100))
    country_code = Column(String(8))
    contact_no = Column(String(32))
    organization = Column(String(255))

    active = Column(Boolean, nullable=False, default=True)
    deleted = Column(Boolean, nullable=False, default=False)
    verified = Column(Boolean, nullable=False, default=False)

    created = Column(DateTime(timezone=True), default=_utcnow)
    updated = Column(DateTime(timezone=True), default=_utcnow,
                     onupdate=_utcnow)

    roles = relationship('DBRole', secondary=user_roles, lazy='joined',
                         backref='users')

    def to_domain(self) -> domain.User:
        return domain.User(
            user_id=self.user_id,
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            country_code=self.country_code,
            contact_no=self.contact_no,
            organization=self.organization,
            active=bool(self.active),
            deleted=bool(self.deleted),
            verified=bool(self.verified),
            roles=sorted(role.name for role in self.roles if not role.deleted),
            created=_aware(self.created),
            updated=_aware(self.updated)
        )


class DBRefreshToken(db.Model):  # type: ignore
    """
    Persistence for :class:`domain.RefreshToken`.

    Only a digest of the token string is stored. The unique constraint on
    ``user_id`` caps each user at one live refresh token.
    """

    __tablename__ = 'refresh_tokens'

    token_id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(ForeignKey('users.user_id', ondelete='CASCADE'),
                     nullable=False, unique=True)
    token_digest = Column(String(64), nullable=False, unique=True)
    expires = Column(DateTime(timezone=True), nullable=False)
    created = Column(DateTime(timezone=True), default=_utcnow)

    def to_domain(self, token: str) -> domain.RefreshToken:
        return domain.RefreshToken(
            token_id=self.token_id,
            user_id=self.user_id,
            token=token,
            expires=_aware(self.expires)
        )
