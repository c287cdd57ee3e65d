"""
Persist normalized sensor readings and their parameter links
"""

from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from models.base import generate_uuid
from models.sensor_reading import SensorReading, SensorReadingParameter
from schemas.normalized import SensorReadingCreate
from core.exceptions import BatchPersistenceError
import logging

logger = logging.getLogger(__name__)


class SensorReadingLoader:
    """
    Write one batch of normalized readings as a single transaction.
    
    Ensures:
    - Readings are created before their parameter links
    - A failed batch leaves nothing behind (rollback)
    """
    
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
    
    async def load(self, items: List[SensorReadingCreate]) -> int:
        """
        Create readings, then link each one to its parameters.
        
        Args:
            items: Validated normalized readings for one batch
            
        Returns:
            Number of readings written
        
        Raises:
            BatchPersistenceError: If any write in the batch fails
        """
        if not items:
            return 0
        
        try:
            created = []
            for item in items:
                reading = SensorReading(
                    id=generate_uuid(),
                    station_id=item.station_id,
                    timestamp=item.timestamp,
                    source_id=item.source_id,
                    device_address=item.device_address,
                    readings=item.readings,
                )
                created.append((reading, item.parameter_ids))
            
            self.db.add_all([reading for reading, _ in created])
            await self.db.flush()
            
            links = [
                SensorReadingParameter(sensor_reading_id=reading.id, parameter_id=parameter_id)
                for reading, parameter_ids in created
                for parameter_id in dict.fromkeys(parameter_ids)
            ]
            if links:
                self.db.add_all(links)
                await self.db.flush()
            
            await self.db.commit()
        
        except Exception as e:
            logger.error(f"Error inserting sensor readings: {str(e)}")
            await self.db.rollback()
            raise BatchPersistenceError(
                "Failed to persist sensor reading batch",
                context={
                    "batch_size": len(items),
                    "table_name": "sensor_readings"
                },
                original_exception=e
            )
        
        logger.info(f"Successfully inserted {len(created)} sensor readings ({len(links)} parameter links)")
        return len(created)
