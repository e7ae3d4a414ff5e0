"""
Test suite for wbasket-solver

Contains:
- tests/unit/          : Unit tests for individual modules and the solve entry points
"""
