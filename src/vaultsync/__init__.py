"""vaultsync: one-way sync of a local vault folder to Google Drive."""

__version__ = "1.0.0"
