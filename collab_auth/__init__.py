"""Shared identity, token, and authorization toolkit for Collabrix services."""
