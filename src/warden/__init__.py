"""Warden: pluggable chat moderation rules for Discord."""

__version__ = "0.1.0"
