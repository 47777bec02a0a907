"""
Persistence for credentials, roles, and refresh tokens.

Every function here expects to be called inside a Flask application context
for an app on which :func:`init_app` has been called.
"""

from . import accounts, authenticate, models, refresh_tokens, roles, util

init_app = util.init_app
create_all = util.create_all
drop_all = util.drop_all
transaction = util.transaction
is_available = util.is_available
