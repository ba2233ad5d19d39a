from sqlalchemy import Column, DateTime, JSON, String, func

from cargo.models.base import Base


class AppSetting(Base):
    """Process-wide settings documents keyed by name (``tax``)."""

    __tablename__ = "app_settings"

    key = Column(String, primary_key=True)
    value = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
