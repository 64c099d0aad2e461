"""
Data-access core for the text-to-speech SaaS backend.
Connection pool management, retrying repositories and the monthly usage quota.
"""

__version__ = "0.1.0"
