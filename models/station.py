from sqlalchemy import Column, String, Float, Enum, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, JSONType, StationStatus, generate_uuid


class Station(Base):
    """
    Meteorological station owned by the station directory.

    The migration pipeline only reads this table: ``device_address`` is the
    hardware identifier reported by the station firmware and is used to match
    raw documents to a station.
    """
    __tablename__ = "meteorological_stations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    device_address = Column(String(64), nullable=True, unique=True)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    status = Column(Enum(StationStatus), default=StationStatus.ACTIVE, nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    parameters = relationship("Parameter", back_populates="station")


class ParameterType(Base):
    """
    Definition of a measured quantity and how to derive it from raw channels.

    calibration maps raw channel name -> {"offset": x, "factor": y}.
    polynomial references coefficients as a0, a1, ... and calibrated channels
    by their calibration key, e.g. "a0 + a1*temperatura".
    """
    __tablename__ = "parameter_types"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    json_id = Column(String(100), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    metric = Column(String(50), nullable=False)

    calibration = Column(JSONType, nullable=False, default=dict)
    polynomial = Column(Text, nullable=True)
    coefficients = Column(JSONType, nullable=False, default=list)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    parameters = relationship("Parameter", back_populates="parameter_type")


class Parameter(Base):
    """Links a station to a parameter type (many per station)."""
    __tablename__ = "parameters"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    station_id = Column(String(36), ForeignKey("meteorological_stations.id"), nullable=False)
    parameter_type_id = Column(String(36), ForeignKey("parameter_types.id"), nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    station = relationship("Station", back_populates="parameters")
    parameter_type = relationship("ParameterType", back_populates="parameters")

    __table_args__ = (
        Index("idx_parameter_station", "station_id"),
    )
