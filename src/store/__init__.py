"""Review storage layer.

This module persists validated reviews and the processed-file ledger
that keeps each S3 object from being ingested twice.
"""
