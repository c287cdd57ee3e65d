from migration.loaders.reading_loader import SensorReadingLoader

__all__ = ["SensorReadingLoader"]
