# backend/market_data/db/models.py

import datetime
import uuid

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Float,
    String,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class QuoteRecord(Base):
    __tablename__ = "stock_quotes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    symbol = Column(String(5), nullable=False, index=True)
    price = Column(Float, nullable=False)
    volume = Column(BigInteger, nullable=False, default=0)
    source = Column(String, nullable=False)
    as_of = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    def __repr__(self):
        return f"<QuoteRecord(symbol='{self.symbol}', as_of='{self.as_of}')>"
