"""Bulk backup and deployment of mailbox automatic-reply (OOF) settings."""

__version__ = "1.0.0"
