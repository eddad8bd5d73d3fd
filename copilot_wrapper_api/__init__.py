"""Copilot Wrapper API - HTTP relay for the GitHub Copilot assistant."""

__version__ = "0.1.0"
