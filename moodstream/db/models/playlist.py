from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from moodstream.db.base import Base, CreatedAtMixin


class Playlist(Base, CreatedAtMixin):
    """Playlist owned by the user who created it."""

    __tablename__ = "playlists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # Relationships
    user = relationship("User", back_populates="playlists")
    tracks = relationship(
        "PlaylistTrack",
        back_populates="playlist",
        order_by="PlaylistTrack.added_at",
        cascade="all, delete-orphan",
    )
