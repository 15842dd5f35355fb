"""Derived-state maintenance: mention extraction and reconciliation, story context patching."""
