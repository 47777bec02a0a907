"""Tests for :mod:`collab_auth`."""
