"""
Fetch coordination: request deduplication and prefetching.
"""
