"""
Test Suite

Contains unit tests for the aggregator.

Structure:
- tests/unit/: Tests for individual components (normalization, merge, diff,
  snapshot store, orchestration, scheduler, API)

Uses pytest with pytest-asyncio for testing async functionality.
"""
