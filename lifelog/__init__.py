"""
Lifelog: a small HTTP service recording life events with free-form tags.
"""

__version__ = "0.1.0"
