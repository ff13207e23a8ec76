"""Test support programs shipped with the package."""
