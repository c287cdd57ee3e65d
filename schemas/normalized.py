"""
Pydantic schemas for calibration configuration and normalized readings
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class CalibrationEntry(BaseModel):
    """Offset/factor pair for one raw channel. Missing values mean identity."""
    offset: Optional[float] = None
    factor: Optional[float] = None
    
    def apply(self, value: float) -> float:
        offset = self.offset if self.offset is not None else 0.0
        factor = self.factor if self.factor is not None else 1.0
        return (value + offset) * factor


class ParameterTypeConfig(BaseModel):
    """
    Calibration view of a parameter type.
    
    Built from the ``ParameterType`` ORM row; only the fields the calibration
    engine needs are kept.
    """
    name: str = Field(..., min_length=1)
    metric: Optional[str] = None
    calibration: Dict[str, Optional[CalibrationEntry]] = Field(default_factory=dict)
    polynomial: Optional[str] = None
    coefficients: List[float] = Field(default_factory=list)
    
    @validator("calibration", pre=True)
    def empty_calibration(cls, v):
        """Treat a NULL calibration column as no channels"""
        return v if v is not None else {}
    
    @validator("coefficients", pre=True)
    def empty_coefficients(cls, v):
        return v if v is not None else []
    
    @property
    def has_polynomial(self) -> bool:
        return bool(self.polynomial and self.polynomial.strip()) and len(self.coefficients) > 0
    
    class Config:
        from_attributes = True


class CalibrationResult(BaseModel):
    """Output of the calibration engine for one reading."""
    parameter_values: Dict[str, float] = Field(default_factory=dict)
    calibrated_readings: Dict[str, float] = Field(default_factory=dict)


class SensorReadingCreate(BaseModel):
    """
    Schema for creating a normalized sensor reading.
    
    readings is the merge of raw values, calibrated values and derived
    parameter values, in that order of precedence (later wins).
    """
    station_id: str = Field(..., min_length=1)
    timestamp: datetime
    source_id: str = Field(..., min_length=1, max_length=255)
    device_address: Optional[str] = Field(None, max_length=64)
    readings: Dict[str, Any] = Field(default_factory=dict)
    parameter_ids: List[str] = Field(default_factory=list)
