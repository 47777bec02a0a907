"""
Role-based authorization of user requests.

This module provides :func:`scoped`, a decorator factory used to protect Flask
routes for which authorization is required. This is done by specifying a
required role and/or by providing a custom authorizer function.

The call signature of an authorizer function should be:
``(principal: domain.Principal, *args, **kwargs) -> bool``, where `*args` and
`**kwargs` are the positional and keyword arguments, respectively, passed by
Flask to the decorated route function (e.g. the URL parameters).

Here's an example of how you might use this in a Flask application:

.. code-block:: python

   from collab_auth.auth.decorators import scoped, self_or_admin


   @blueprint.route('/users/<string:user_id>', methods=['GET'])
   @scoped(authorizer=self_or_admin)
   def get_user(user_id: str):
       data, code, headers = users.get_user(user_id)
       return jsonify(data), code, headers


When the decorated route function is called...

- If the request carries no verified principal, :class:`.Unauthorized` is
  raised.
- If a required role was provided, the principal is checked for it.
- If an authorizer function was provided, the function is called.
- Finally, if no exceptions have been raised, the route is called with the
  original parameters.

The bearer token itself is verified earlier, and leniently, by
:class:`.middleware.AuthMiddleware`; this module only decides.
"""

from typing import Any, Callable, Optional
from functools import wraps
import logging

from flask import request, current_app

from .. import domain
from ..exceptions import Unauthorized, AccessDenied

logger = logging.getLogger(__name__)


def scoped(role: Optional[str] = None,
           authorizer: Optional[Callable] = None) -> Callable:
    """
    Generate a decorator to enforce authorization requirements.

    Parameters
    ----------
    role : str
        The role required of the principal in order to use the decorated
        route. If not provided, any authenticated principal is accepted.
    authorizer : function
        An additional check, e.g. that the requesting user owns the resource.
        Should have the signature
        ``(principal: domain.Principal, *args, **kwargs) -> bool``. If the
        authorizer returns ``False``, :class:`.AccessDenied` is raised.

    Returns
    -------
    function

    """
    def protector(func: Callable) -> Callable:
        """Decorator that provides role enforcement."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            """
            Check the authenticated principal before executing the method.

            Raises
            ------
            :class:`.Unauthorized`
                Raised when no principal is available.
            :class:`.AccessDenied`
                Raised when the principal lacks the required role, or the
                provided authorizer returns ``False``.

            """
            principal: Optional[domain.Principal] = \
                getattr(request, 'auth', None)
            if principal is None:
                logger.debug('No authenticated principal; aborting')
                raise Unauthorized('Authentication required')

            if role and not principal.has_role(role):
                logger.debug('%s lacks role %s', principal.username, role)
                raise AccessDenied('Access denied')

            if authorizer and not authorizer(principal, *args, **kwargs):
                logger.debug('Authorizer returned negative result')
                raise AccessDenied('Access denied')

            logger.debug('Request is authorized, proceeding')
            return func(*args, **kwargs)
        return wrapper
    return protector


def is_admin(principal: domain.Principal, *args: Any, **kwargs: Any) -> bool:
    """Check whether the principal holds the configured administrator role."""
    return principal.has_role(current_app.config.get('ADMIN_ROLE', 'ADMIN'))


def self_or_admin(principal: domain.Principal, user_id: Optional[str] = None,
                  **kwargs: Any) -> bool:
    """Check that the principal is the user in question, or an admin."""
    if user_id is not None and principal.user_id == str(user_id):
        return True
    return is_admin(principal)
