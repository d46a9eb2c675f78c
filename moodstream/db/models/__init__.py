from moodstream.db.models.user import User
from moodstream.db.models.track import Track
from moodstream.db.models.playlist import Playlist
from moodstream.db.models.playlist_track import PlaylistTrack

__all__ = [
    "User",
    "Track",
    "Playlist",
    "PlaylistTrack",
]
