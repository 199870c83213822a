"""Tests for the notifications app."""
