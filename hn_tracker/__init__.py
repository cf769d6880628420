"""Hacker News front page and comment thread tracker."""

__version__ = "0.1.0"
