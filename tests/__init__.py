# Kitty Creek Test Suite
"""
Test suite for the Kitty Creek fishing bot.

Run all tests:
    pytest

Run fishing tests only:
    pytest tests/fishing/ -v

Run with coverage:
    pytest --cov=core --cov=cogs --cov-report=html
"""
