"""HTTP routes for the accounts service."""
