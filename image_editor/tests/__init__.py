"""Tests for the image editor."""
