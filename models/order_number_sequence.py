from sqlalchemy import Column, Integer

from models.base import Base


class OrderNumberSequence(Base):
    """Per-year counter backing ORD-<year>-<seq> order numbers."""
    __tablename__ = "order_number_sequences"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_value = Column(Integer, nullable=False, default=0)
