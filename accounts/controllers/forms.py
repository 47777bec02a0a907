"""Provides forms for registration, login, and role administration."""

from wtforms import StringField, PasswordField
from wtforms.validators import DataRequired, Email, Length, Regexp, optional

from collab_auth import domain
from collab_auth.forms import JSONForm

USERNAME = r'^[A-Za-z0-9_.\-]+$'
COUNTRY_CODE = r'^\+?[0-9]{1,4}$'
CONTACT_NO = r'^[0-9\- ]{4,20}$'


class RegistrationForm(JSONForm):
    """Account registration."""

    ALIASES = {
        'firstName': 'first_name',
        'lastName': 'last_name',
        'countryCode': 'country_code',
        'contactNo': 'contact_no',
    }

    username = StringField('Username', validators=[
        DataRequired(), Length(min=3, max=64),
        Regexp(USERNAME, message='Letters, digits, and . _ - only')
    ])
    email = StringField('Email address', validators=[
        DataRequired(), Email(), Length(max=255)
    ])
    password = PasswordField('Password', validators=[
        DataRequired(), Length(min=8, max=128)
    ])
    first_name = StringField('First name',
                             validators=[DataRequired(), Length(max=100)])
    last_name = StringField('Last name', validators=[optional(),
                                                     Length(max=100)])
    country_code = StringField('Country code', validators=[
        optional(), Regexp(COUNTRY_CODE, message='Not a country code')
    ])
    contact_no = StringField('Contact number', validators=[
        optional(), Regexp(CONTACT_NO, message='Not a contact number')
    ])
    organization = StringField('Organization', validators=[optional(),
                                                           Length(max=255)])

    def to_domain(self) -> domain.UserRegistration:
        """Generate a :class:`.UserRegistration` from this form's data."""
        return domain.UserRegistration(
            username=self.username.data.strip(),
            email=self.email.data.strip(),
            password=self.password.data,
            first_name=self.first_name.data.strip(),
            last_name=self.last_name.data or None,
            country_code=self.country_code.data or '',
            contact_no=self.contact_no.data or '',
            organization=self.organization.data or None
        )


class LoginForm(JSONForm):
    """Log in form."""

    username = StringField('Username or e-mail', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


class RefreshForm(JSONForm):
    """Exchange a refresh token for a new token pair."""

    ALIASES = {'refreshToken': 'refresh_token'}

    refresh_token = StringField('Refresh token', validators=[DataRequired()])


class RoleForm(JSONForm):
    """Create a user-defined role."""

    name = StringField('Role name', validators=[
        DataRequired(), Length(max=64),
        Regexp(r'^[A-Za-z0-9_]+$', message='Letters, digits, and _ only')
    ])


class RoleAssignmentForm(JSONForm):
    """Assign a role to a user."""

    ALIASES = {'roleName': 'role_name'}

    role_name = StringField('Role name', validators=[DataRequired()])
