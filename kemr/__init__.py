"""
Kenya EMR Clinical Dashboard.

Patient records, clinical data entry, exports and AI-assisted summaries.
"""

__version__ = "0.1.0"
