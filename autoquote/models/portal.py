from sqlalchemy import Column, String, JSON
from autoquote.models.base import BaseModel


class PortalRecord(BaseModel):
    __tablename__ = "portals"

    company_name = Column(String(120), nullable=False)
    options = Column(JSON, nullable=False, default=dict)
    custom_rates = Column(JSON, nullable=False, default=list)
