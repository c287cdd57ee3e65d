"""
Calibrate raw sensor channels and derive parameter values from them
"""

from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional
import numbers
import logging

from core.exceptions import CalibrationError, ExpressionError
from migration.expression import parse_expression
from schemas.normalized import CalibrationEntry, CalibrationResult, ParameterTypeConfig

logger = logging.getLogger(__name__)


class ChannelMatch(NamedTuple):
    reading_key: str
    calibration_key: str


class CalibrationEngine:
    """
    Apply per-channel calibration and parameter polynomials to one reading.
    
    For each parameter type:
    - calibration keys are matched to raw channels case-insensitively
    - every matched channel is calibrated as (value + offset) * factor
    - the parameter value is the polynomial over a0..aN and the calibrated
      channels, or the first matched channel when no polynomial applies
    
    Calibrated channels are reported under the raw channel name.
    """
    
    def process(
        self,
        parameter_types: Iterable[ParameterTypeConfig],
        readings: Mapping[str, Any]
    ) -> CalibrationResult:
        """
        Run every parameter type of a station against a reading's raw values.
        
        Returns:
            CalibrationResult with parameter name -> value and
            raw channel -> calibrated value. Both may be empty.
        
        Raises:
            CalibrationError: If a matched channel holds a non-numeric value
        """
        parameter_values: Dict[str, float] = {}
        calibrated_readings: Dict[str, float] = {}
        channel_index = self._index_channels(readings)
        
        for parameter_type in parameter_types:
            matches = self.match_channels(parameter_type, channel_index)
            if not matches:
                continue
            
            calibrated = [
                (match, self.calibrate(parameter_type, match, readings[match.reading_key]))
                for match in matches
            ]
            for match, value in calibrated:
                calibrated_readings[match.reading_key] = value
            
            parameter_values[parameter_type.name] = self._parameter_value(
                parameter_type, calibrated
            )
        
        return CalibrationResult(
            parameter_values=parameter_values,
            calibrated_readings=calibrated_readings,
        )
    
    @staticmethod
    def _index_channels(readings: Mapping[str, Any]) -> Dict[str, str]:
        """Lower-cased channel name -> first raw channel name with that spelling"""
        index: Dict[str, str] = {}
        for key in readings:
            index.setdefault(str(key).lower(), key)
        return index
    
    def match_channels(
        self,
        parameter_type: ParameterTypeConfig,
        channel_index: Mapping[str, str]
    ) -> List[ChannelMatch]:
        """Pair calibration keys with raw channels, in calibration key order."""
        matches = []
        for calibration_key in parameter_type.calibration:
            reading_key = channel_index.get(calibration_key.lower())
            if reading_key is not None:
                matches.append(ChannelMatch(reading_key, calibration_key))
        return matches
    
    def calibrate(
        self,
        parameter_type: ParameterTypeConfig,
        match: ChannelMatch,
        value: Any
    ) -> float:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise CalibrationError(
                "Sensor value is not numeric",
                context={
                    "parameter": parameter_type.name,
                    "reading_key": match.reading_key,
                    "reading_value": repr(value),
                },
            )
        entry: Optional[CalibrationEntry] = parameter_type.calibration.get(match.calibration_key)
        if entry is None:
            return float(value)
        return entry.apply(float(value))
    
    def _parameter_value(
        self,
        parameter_type: ParameterTypeConfig,
        calibrated: List[tuple]
    ) -> float:
        fallback = calibrated[0][1]
        if not parameter_type.has_polynomial:
            return fallback
        
        variables: Dict[str, float] = {
            f"a{index}": coefficient
            for index, coefficient in enumerate(parameter_type.coefficients)
        }
        for match, value in calibrated:
            variables[match.calibration_key] = value
        
        try:
            return parse_expression(parameter_type.polynomial).evaluate(variables)
        except ExpressionError as e:
            logger.warning(
                f"Failed to evaluate polynomial for parameter {parameter_type.name}, "
                f"falling back to calibrated value: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return fallback
