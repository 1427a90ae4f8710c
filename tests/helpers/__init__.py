"""Test helpers for the Kindling test suite."""
