"""Monitor model - probed services shown on status pages."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base
from .status_page import monitor_group


class Monitor(Base):
    """A probed service. Heartbeats are appended by the external prober."""

    __tablename__ = "monitors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    active = Column(Integer, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    heartbeats = relationship("Heartbeat", back_populates="monitor", cascade="all, delete-orphan")
    groups = relationship("MonitorGroup", secondary=monitor_group, back_populates="monitors")
