"""
SongReply - Message to Song Matching Engine

Maps a short free-text chat message to a ranked list of catalog songs by
combining keyword, semantic, mood and entity signals and reranking them
with a configurable weighted formula.
"""

__version__ = "0.1.0"
__author__ = "SongReply Team"
