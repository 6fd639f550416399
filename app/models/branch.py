"""
Branch model: office location with a circular geofence
"""
from sqlalchemy import Column, Integer, String, Float, ForeignKey
from app.db.base import Base


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    geofence_radius_meters = Column(Float, nullable=True)  # null => settings.DEFAULT_GEOFENCE_RADIUS_METERS
