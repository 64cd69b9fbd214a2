"""Trust scoring for websites and job postings."""

__version__ = "0.1.0"
