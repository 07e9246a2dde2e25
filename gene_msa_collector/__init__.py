"""
Gene MSA Collector - automated retrieval of per-gene multiple sequence alignments.

This package drives the orthobrowser web application one gene at a time:
search → autocomplete → export → capture, persisting each alignment as a
text artifact keyed by gene name.
"""

__version__ = "0.1.0"
__author__ = "Gene MSA Collector Team"
