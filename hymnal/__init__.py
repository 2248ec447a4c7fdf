"""
LPMI hymnal data service

Songs, song collections, favorites and Bible content read from a remote tree
document store through a local TTL cache, with collection access decided by
the caller's sign-in, role and premium status.
"""
