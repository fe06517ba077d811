"""Tests for survey quality analytics."""
