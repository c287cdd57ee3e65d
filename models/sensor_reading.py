from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, JSONType, generate_uuid


class SensorReading(Base):
    """
    Normalized reading produced by the migration pipeline.

    Design:
    - One row per migrated raw document
    - source_id keeps the raw document id for lineage
    - readings holds raw values, calibrated values and derived parameter values
      merged into one JSON object
    """
    __tablename__ = "sensor_readings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    station_id = Column(String(36), ForeignKey("meteorological_stations.id"), nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    source_id = Column(String(255), nullable=False, index=True)
    device_address = Column(String(64), nullable=True)

    readings = Column(JSONType, nullable=False, default=dict)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    station = relationship("Station")
    parameters = relationship(
        "Parameter",
        secondary="sensor_reading_parameters",
        viewonly=True,
    )

    __table_args__ = (
        Index("idx_reading_station_timestamp", "station_id", "timestamp"),
    )


class SensorReadingParameter(Base):
    """Join table between sensor readings and the parameters that produced them."""
    __tablename__ = "sensor_reading_parameters"

    sensor_reading_id = Column(String(36), ForeignKey("sensor_readings.id"), primary_key=True)
    parameter_id = Column(String(36), ForeignKey("parameters.id"), primary_key=True)
