"""Status page models - public pages and the monitor groups they show."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship

from ..database import Base


# Junction table between monitors and status page groups
monitor_group = Table(
    "monitor_group",
    Base.metadata,
    Column("monitor_id", Integer, ForeignKey("monitors.id", ondelete="CASCADE"), primary_key=True),
    Column("group_id", Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True),
    Column("weight", Integer, default=1000),
)


class StatusPage(Base):
    """A public status page, addressed by its slug."""

    __tablename__ = "status_pages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String, nullable=False, unique=True, index=True)  # always lowercase
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    icon = Column(String, default="/icon.svg")
    footer_text = Column(String, nullable=True)
    published = Column(Integer, default=1)
    heartbeat_bar_days = Column(Integer, default=0)  # 0 = raw heartbeat tail
    created_at = Column(DateTime, default=datetime.utcnow)

    groups = relationship(
        "MonitorGroup",
        back_populates="status_page",
        cascade="all, delete-orphan",
        order_by="MonitorGroup.weight",
    )


class MonitorGroup(Base):
    """A titled section of a status page listing monitors."""

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    status_page_id = Column(Integer, ForeignKey("status_pages.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    public = Column(Integer, default=1)
    weight = Column(Integer, default=1000)

    status_page = relationship("StatusPage", back_populates="groups")
    monitors = relationship("Monitor", secondary=monitor_group, back_populates="groups")
