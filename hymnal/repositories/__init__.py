"""
Repositories package

Each repository combines the cache layer, the access gate and the remote
document store for one entity family:
- collection_repository.py
- song_repository.py
- favorites_repository.py
- bible_repository.py

Every operation returns a Result. Access denial is a failed Result carrying
the reason code, never an exception.

Usage:
    from hymnal.context import build_context
    ctx = build_context()
    songs = ctx.songs.get_all(auth, collection_id="lpmi").value
"""
