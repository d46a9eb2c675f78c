from sqlalchemy import BigInteger, Column, Integer, String, Text

from moodstream.db.base import Base, CreatedAtMixin


class Track(Base, CreatedAtMixin):
    """Uploaded audio track with denormalized storage metadata."""

    __tablename__ = "tracks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    artist_name = Column(String(255), nullable=False, default="Unknown Artist")
    uploader_name = Column(String(255), nullable=True)

    # Object store references
    storage_key = Column(String(512), nullable=False)
    public_url = Column(Text, nullable=True)
    cover_path = Column(String(512), nullable=True)
    cover_url = Column(Text, nullable=True)
    size_bytes = Column(BigInteger, nullable=True)
    mime_type = Column(String(100), nullable=True)
    duration_seconds = Column(Integer, nullable=True)

    # Soft ownership
    auth_subject = Column(String(255), nullable=True, index=True)
    legacy_user_id = Column(Integer, nullable=True)
