from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import mapped_column

from picshelf.db import Base


class Image(Base):
    __tablename__ = "images"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Object store key (e.g., uploads/<uuid>-<filename>), also the delete handle
    key = mapped_column(String, unique=True, nullable=False)
    # Public URL derived from the key at upload time, never recomputed
    url = mapped_column(String, nullable=False)
    title = mapped_column(String, nullable=False)
    description = mapped_column(Text, nullable=False)
    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<Image id={self.id} key={self.key!r}>"
