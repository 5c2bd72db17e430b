"""
Test suite for the lending core

Contains:
- tests/unit/          : Unit tests for individual modules and end-to-end scenarios
"""
