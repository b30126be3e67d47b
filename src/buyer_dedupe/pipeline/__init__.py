"""
Batch pipeline runner for buyer deduplication.
"""
