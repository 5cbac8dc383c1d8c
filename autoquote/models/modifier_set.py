from sqlalchemy import Column, Boolean, ForeignKey, JSON
from autoquote.models.base import BaseModel


class ModifierSetRecord(BaseModel):
    __tablename__ = "modifier_sets"

    portal_id = Column(ForeignKey("portals.id"), nullable=True, unique=True)

    is_global = Column(Boolean, nullable=False, default=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
