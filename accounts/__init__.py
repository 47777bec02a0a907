"""
The accounts service.

Handles registration, login, token refresh and logout, and the
administrative surface for roles and users.
"""
