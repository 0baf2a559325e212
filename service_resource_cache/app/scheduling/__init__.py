"""
Timer sources used for deferred eviction and prefetch delays.
"""
