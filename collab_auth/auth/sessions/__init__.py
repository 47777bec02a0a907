"""Provides the session issuer for access/refresh token pairs."""

from .issuer import SessionIssuer, init_app, current_issuer, register, \
    login, refresh, logout
