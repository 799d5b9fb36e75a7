"""
Batch job that extends the expiry of Firestore documents whose ids are
pending in a Redis set.
"""

__version__ = "0.1.0"
