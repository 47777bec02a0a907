"""SQLAlchemy models for the profile store."""

from typing import Optional
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from pytz import UTC
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, \
    String, Text
from sqlalchemy.orm import relationship

from ... import domain

db: SQLAlchemy = SQLAlchemy()


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class DBProfile(db.Model):
    """Persistence for :class:`domain.Profile`."""

    __tablename__ = 'user_profiles'

    profile_id = Column(String(255), primary_key=True)
    username = Column(String(64), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)

    first_name = Column(String(100))
    last_name = Column(String(100))
    country_code = Column(String(10))
    contact_no = Column(String(20))
    organization = Column(String(255))
    avatar_url = Column(String(500))
    bio = Column(Text)
    linkedin_url = Column(String(255))
    github_url = Column(String(255))
    twitter_url = Column(String(255))
    website_url = Column(String(255))

    active = Column(Boolean, nullable=False, default=True, index=True)
    completion = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)

    created = Column(DateTime(timezone=True), default=_utcnow)
    updated = Column(DateTime(timezone=True), default=_utcnow,
                     onupdate=_utcnow)
    last_login = Column(DateTime(timezone=True))

    roles = relationship('DBProfileRole', cascade='all, delete-orphan',
                         lazy='joined')

    def update_completion(self) -> None:
        """Recalculate the completion percentage from the current fields."""
        self.completion = domain.completion(self)
        self.completed = domain.is_complete(self.completion)

    def to_domain(self) -> domain.Profile:
        return domain.Profile(
            profile_id=self.profile_id,
            username=self.username,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            country_code=self.country_code,
            contact_no=self.contact_no,
            organization=self.organization,
            avatar_url=self.avatar_url,
            bio=self.bio,
            linkedin_url=self.linkedin_url,
            github_url=self.github_url,
            twitter_url=self.twitter_url,
            website_url=self.website_url,
            active=bool(self.active),
            roles=sorted(role.name for role in self.roles),
            completion=self.completion or 0,
            completed=bool(self.completed),
            created=_aware(self.created),
            updated=_aware(self.updated),
            last_login=_aware(self.last_login)
        )


class DBProfileRole(db.Model):
    """A role held by the profile's user, as last announced."""

    __tablename__ = 'user_profile_roles'

    profile_id = Column(String(255),
                        ForeignKey('user_profiles.profile_id',
                                   ondelete='CASCADE'),
                        primary_key=True)
    name = Column(String(64), primary_key=True)
