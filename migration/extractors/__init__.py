from migration.extractors.mongo_extractor import MongoRawDataSource

__all__ = ["MongoRawDataSource"]
