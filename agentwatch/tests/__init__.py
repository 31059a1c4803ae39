"""Tests for agentwatch."""
