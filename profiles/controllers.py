"""Request controllers for the profiles service."""

from typing import Any, List, Mapping, Optional, Tuple
from http import HTTPStatus
import logging

from retry import retry
from wtforms import StringField
from wtforms.validators import Length, Regexp, optional

from collab_auth.domain import Principal
from collab_auth.exceptions import StoreUnavailable
from collab_auth.forms import JSONForm

from . import domain
from .services import datastore

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def _url(host: str) -> Regexp:
    return Regexp(rf'^(https?://)?(www\.)?{host}(/.*)?$',
                  message='Not a valid URL for this field')


class ProfileForm(JSONForm):
    """Partial profile update. Every field is optional."""

    ALIASES = {
        'firstName': 'first_name',
        'lastName': 'last_name',
        'countryCode': 'country_code',
        'contactNo': 'contact_no',
        'avatarUrl': 'avatar_url',
        'linkedinUrl': 'linkedin_url',
        'githubUrl': 'github_url',
        'twitterUrl': 'twitter_url',
        'websiteUrl': 'website_url',
    }

    first_name = StringField('First name', validators=[optional(),
                                                       Length(max=100)])
    last_name = StringField('Last name', validators=[optional(),
                                                     Length(max=100)])
    country_code = StringField('Country code', validators=[
        optional(), Regexp(r'^\+?[0-9]{1,4}$', message='Not a country code')
    ])
    contact_no = StringField('Contact number', validators=[
        optional(), Regexp(r'^\+?[1-9][0-9]{1,14}$',
                           message='Invalid phone number format')
    ])
    organization = StringField('Organization', validators=[optional(),
                                                           Length(max=255)])
    avatar_url = StringField('Avatar', validators=[
        optional(), Length(max=500), _url(r'[A-Za-z0-9\-.]+\.[A-Za-z]{2,}')
    ])
    bio = StringField('Bio', validators=[optional(), Length(max=1000)])
    linkedin_url = StringField('LinkedIn', validators=[
        optional(), _url(r'linkedin\.com')
    ])
    github_url = StringField('GitHub', validators=[
        optional(), _url(r'github\.com')
    ])
    twitter_url = StringField('Twitter', validators=[
        optional(), _url(r'(twitter|x)\.com')
    ])
    website_url = StringField('Website', validators=[
        optional(), _url(r'[A-Za-z0-9\-]+(\.[A-Za-z]{2,})+')
    ])


def summarize(profile: domain.Profile) -> dict:
    """Render a profile for a response body."""
    return {
        'userId': profile.profile_id,
        'username': profile.username,
        'email': profile.email,
        'firstName': profile.first_name,
        'lastName': profile.last_name,
        'countryCode': profile.country_code,
        'contactNo': profile.contact_no,
        'organization': profile.organization,
        'avatarUrl': profile.avatar_url,
        'bio': profile.bio,
        'linkedinUrl': profile.linkedin_url,
        'githubUrl': profile.github_url,
        'twitterUrl': profile.twitter_url,
        'websiteUrl': profile.website_url,
        'active': profile.active,
        'roles': profile.roles,
        'profileCompletionPercentage': profile.completion,
        'profileCompleted': profile.completed,
        'created': profile.created.isoformat() if profile.created else None,
        'updated': profile.updated.isoformat() if profile.updated else None,
        'lastLoginAt': (profile.last_login.isoformat()
                        if profile.last_login else None),
    }


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def get_profile(user_id: str) -> ResponseData:
    """Get a user's profile."""
    return summarize(datastore.get_profile(user_id)), HTTPStatus.OK, {}


def update_profile(user_id: str,
                   payload: Optional[Mapping[str, Any]]) -> ResponseData:
    """Change the fields present in the request body, and only those."""
    form = ProfileForm.from_json(payload).validated()
    changes = {field: form[field].data.strip() or None
               for field in form.provided(payload)}
    profile = datastore.update_profile(user_id, changes)
    logger.info('Updated %s of profile %s', ', '.join(sorted(changes)),
                user_id)
    return summarize(profile), HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def get_profile_by_username(username: str) -> ResponseData:
    return summarize(datastore.get_profile_by_username(username)), \
        HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def get_own_profile(principal: Principal) -> ResponseData:
    """Get the profile of the requesting user."""
    if principal.user_id:
        profile = datastore.get_profile(principal.user_id)
    else:
        profile = datastore.get_profile_by_username(principal.username)
    return summarize(profile), HTTPStatus.OK, {}


def deactivate_profile(user_id: str, actor: Principal) -> ResponseData:
    """Mark a profile inactive; its owner can no longer change it."""
    datastore.deactivate_profile(user_id)
    logger.info('Profile %s deactivated by %s', user_id, actor.username)
    return {'message': 'User profile deactivated', 'userId': user_id}, \
        HTTPStatus.OK, {}


def reactivate_profile(user_id: str, actor: Principal) -> ResponseData:
    profile = datastore.reactivate_profile(user_id)
    logger.info('Profile %s reactivated by %s', user_id, actor.username)
    return summarize(profile), HTTPStatus.OK, {}


def record_login(user_id: str) -> ResponseData:
    """Note that the user has just logged in."""
    profile = datastore.record_login(user_id)
    return {'message': 'Last login updated', 'userId': user_id,
            'lastLoginAt': profile.last_login.isoformat()}, HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def get_statistics() -> ResponseData:
    """Aggregate figures, for administrators."""
    stats = datastore.get_statistics()
    return {
        'totalUsers': stats.total,
        'activeUsers': stats.active,
        'inactiveUsers': stats.inactive,
        'completedProfiles': stats.completed,
        'averageProfileCompletion': stats.average_completion,
    }, HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def list_incomplete() -> ResponseData:
    """Active profiles that are not yet complete, for administrators."""
    return _listing(datastore.list_incomplete())


def _listing(profiles: List[domain.Profile]) -> ResponseData:
    return {'profiles': [summarize(profile) for profile in profiles]}, \
        HTTPStatus.OK, {}


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def list_active() -> ResponseData:
    """Every active profile, for administrators."""
    return _listing(datastore.list_active())


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def list_by_organization(organization: str) -> ResponseData:
    return _listing(datastore.list_by_organization(organization))


@retry(StoreUnavailable, tries=3, delay=0.5, backoff=2, logger=logger)
def search(params: Mapping[str, Any]) -> ResponseData:
    """Profiles whose username, e-mail, or name contain ``q``."""
    return _listing(datastore.search_profiles(params.get('q')))
