"""Unit tests for pure domain code."""
