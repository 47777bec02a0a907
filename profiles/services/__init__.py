"""Service integrations for the profiles service."""
