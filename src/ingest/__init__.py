"""Review ingestion pipeline.

This module discovers JSON-lines objects in S3, parses and normalizes
their reviews, and hands valid records to the store layer.
"""
