"""Tests for :mod:`collab_auth.auth.sessions`."""
