from sqlalchemy import Column, Numeric, String

from .database import Base, new_id


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
