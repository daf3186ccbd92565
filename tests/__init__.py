"""Test suite for Taxon-Refinery.

Test organization:
- fixtures/: Mock taxonomy services and test data generators
- unit/: Unit tests for individual modules

Run tests with:
    pytest tests/
    pytest tests/unit/
    pytest tests/ -v --tb=short
"""
