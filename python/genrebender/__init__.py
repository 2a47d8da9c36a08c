"""
GenreBender - Genre lookup for local audio files via MusicBrainz.

This package provides tools to:
- Resolve noisy artist/title/album tags to a MusicBrainz recording
- Fetch recording (or release-group) genres and tags
- Cache resolved lookups on disk with TTL and schema-version checks
- Write the resolved genres back into MP3, FLAC, and M4A files
"""

__version__ = "1.0.0"
