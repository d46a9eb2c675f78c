from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from moodstream.db.base import Base


class User(Base):
    """Local user record keyed by the identity provider's subject."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)

    # External identity subject
    auth_subject = Column(String(255), unique=True, index=True, nullable=False)

    # Relationships
    playlists = relationship("Playlist", back_populates="user")
