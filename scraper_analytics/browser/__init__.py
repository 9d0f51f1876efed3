"""Playwright browser lifecycle, traffic capture and page inspection."""
