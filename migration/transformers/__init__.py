from migration.transformers.calibration import CalibrationEngine, ChannelMatch

__all__ = ["CalibrationEngine", "ChannelMatch"]
