"""
StreamKeeper Test Suite

Test Categories:
- unit/: Fast, isolated tests per component, driven by a manual clock
- integration/: End-to-end player controller scenarios
- fixtures/: Manual clock, recording engine and data factories
"""
