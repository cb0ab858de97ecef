"""
Test suite for agent-curve-engine

Contains:
- tests/unit/          : Unit tests for individual modules
- tests/unit/conftest.py: shared fixtures (params, stores, executors)
"""
