from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from moodstream.db.base import Base
from moodstream.utils.datetime_helper import utc_now


class PlaylistTrack(Base):
    """Membership of a track in a playlist.

    The composite primary key allows a track at most once per playlist.
    ``track_id`` has no foreign key so listings degrade to null track
    fields when the referenced track is gone.
    """

    __tablename__ = "playlist_songs"

    playlist_id = Column(
        Integer, ForeignKey("playlists.id", ondelete="CASCADE"), primary_key=True
    )
    track_id = Column(Integer, primary_key=True)
    added_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    # Relationships
    playlist = relationship("Playlist", back_populates="tracks")
