"""Prompt text: theme/style modifier tables and fixed instructions."""

from .themes import ThemeBook, ThemeEntry, get_theme_book, reset_theme_book

__all__ = ["ThemeBook", "ThemeEntry", "get_theme_book", "reset_theme_book"]
