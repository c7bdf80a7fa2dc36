"""Core data model for deskpilot."""
