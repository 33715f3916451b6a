"""Tests for Protocol Engine."""
