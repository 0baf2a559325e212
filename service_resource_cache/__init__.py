"""
Resource cache package.
"""
