"""Approval gate for queued evolution proposals."""
