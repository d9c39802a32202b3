"""
bulkshot Test Suite

Structure:
- unit/: Fast, isolated unit tests (no browser is launched)
- conftest.py: Shared fixtures, including fake Playwright page/session objects
"""
