"""
The profiles service.

Keeps an extended profile for each account, in step with the accounts service
by consuming its identity events.
"""
