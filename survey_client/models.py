from sqlalchemy import Column, Integer, String, Text, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from survey_client.db import Base


class StoredItem(Base):
    __tablename__ = "stored_items"
    __table_args__ = (UniqueConstraint("origin", "key", name="uq_stored_items_origin_key"),)
    id = Column(Integer, primary_key=True, index=True)
    origin = Column(String(255), nullable=False, index=True)
    key = Column(String(255), nullable=False)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
