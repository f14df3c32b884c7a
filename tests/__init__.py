"""Tests for the election voting services."""
