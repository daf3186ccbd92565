"""Core computational modules for Taxon-Refinery.

This package contains the main analysis engines:
- consistency: per-cluster consistency filtering of taxonomic assignments
"""
