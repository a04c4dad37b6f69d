"""Bonsai: persistent branching conversation trees."""

__version__ = "0.1.0"
