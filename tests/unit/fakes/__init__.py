"""Test doubles for unit tests."""
