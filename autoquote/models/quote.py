from sqlalchemy import Column, Float, ForeignKey, Integer, String, JSON
from autoquote.models.base import Base, BaseModel


class QuoteRecord(BaseModel):
    __tablename__ = "quotes"

    portal_id = Column(ForeignKey("portals.id"), nullable=True)

    miles = Column(Float, nullable=False, default=0.0)
    origin = Column(String(120))
    destination = Column(String(120))
    commission = Column(Float, nullable=False, default=0.0)
    transport_type = Column(String(20), nullable=False, default="open")
    vehicles = Column(JSON, nullable=False, default=list)
    total_pricing = Column(JSON, nullable=True)


class SourceQuoteRecord(Base):
    """Quote as stored by the legacy system, keyed by the same id as QuoteRecord."""

    __tablename__ = "source_quotes"

    id = Column(Integer, primary_key=True)
    vehicle_quotes = Column(JSON, nullable=False, default=list)
