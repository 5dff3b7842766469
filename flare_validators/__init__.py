"""Flare validator eligibility service core."""

__version__ = "1.0.0"
