"""
Station and parameter lookups used by the migration pipeline
"""

from typing import Dict, List
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.station import Station, Parameter, ParameterType

logger = logging.getLogger(__name__)


class StationDirectory:
    """Read-only view over stations and their configured parameters."""
    
    def __init__(self, db_session: AsyncSession):
        self.db = db_session
    
    async def map_device_addresses_to_station_ids(self) -> Dict[str, str]:
        """Device address -> station id, for stations that have an address"""
        result = await self.db.execute(
            select(Station.id, Station.device_address).where(
                Station.device_address.is_not(None)
            )
        )
        mappings = {
            device_address: station_id
            for station_id, device_address in result.all()
        }
        logger.info(f"Found {len(mappings)} stations with device addresses")
        return mappings
    
    async def parameters_for_station(self, station_id: str) -> List[Parameter]:
        """Parameters of a station with their parameter type loaded, ordered by type name"""
        result = await self.db.execute(
            select(Parameter)
            .join(Parameter.parameter_type)
            .where(Parameter.station_id == station_id)
            .options(selectinload(Parameter.parameter_type))
            .order_by(ParameterType.name, Parameter.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
