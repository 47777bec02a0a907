"""Tests for the profiles service."""
