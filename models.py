from sqlalchemy import Column, String, Text
from database import Base

class StorageSlot(Base):
    """One named slot holding a whole serialized journal document."""
    __tablename__ = "storage_slots"
    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(String, nullable=True)
