from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from tracker_app.database.connection import Base


class Option(Base):
    """
    Key/value option row.

    Holds the tracker configuration (website id and analytics URL).
    Rows are created or updated, never deleted.
    """
    __tablename__ = "options"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    # unique=True creates the index used by every lookup
    key = Column(String(191), unique=True, nullable=False)
    value = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
