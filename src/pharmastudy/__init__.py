"""PharmaStudy: a study aid for pharmacology chapters, topics and study items."""

__version__ = "0.1.0"
