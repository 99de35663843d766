"""
Test Suite

Contains unit tests for the ratio chart backend.

Structure:
- tests/unit/: Tests for individual components (series math, sources, pipeline, API)

Provider HTTP calls are faked; no test touches the network.
Uses pytest with pytest-asyncio for testing async functionality.
"""
