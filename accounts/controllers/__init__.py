"""
Request controllers for the accounts service.

Each controller takes the parsed request data and returns a ``(data,
status_code, headers)`` tuple. Failures are raised as the exceptions in
:mod:`collab_auth.exceptions`, and rendered by the app's error handlers.
"""

from typing import Tuple

ResponseData = Tuple[dict, int, dict]
