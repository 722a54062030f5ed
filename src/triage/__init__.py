"""Stale issue triage for GitHub repositories."""

__version__ = "0.1.0"
