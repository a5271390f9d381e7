from sqlalchemy import Column, Float, String, Text

from .database import Base, new_id


class Store(Base):
    """Retail location. Reference data maintained outside this service."""
    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)

    # WGS84 degrees
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    full_address = Column(Text, nullable=False)
