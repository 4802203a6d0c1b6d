"""
Room Manager Module - Room Cleaning Tracker

This module handles the static reference data of the tracker: buildings
(locations) and the rooms inside them. Rooms are what QR codes point at and
what cleaning events and problem reports are recorded against.

Features:
- Room lookup with its building
- Room listing ordered for printing
- Location and room creation for admins
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .errors import NotFound, ValidationError


@dataclass
class Room:
    """Room with its building name joined in."""
    id: int
    room_number: str
    location_id: int
    building_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Location:
    """Building that rooms belong to."""
    id: int
    building_name: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_room_id(room_id) -> int:
    """
    Convert a room id taken from a URL to the stored integer id.

    Raises:
        NotFound: The value cannot be a room id
    """
    try:
        return int(str(room_id).strip())
    except ValueError:
        raise NotFound(f"Room {room_id} not found") from None


class RoomManager:
    """
    Room and location administration.
    """

    _ROOM_QUERY = """
        SELECT r.id, r.room_number, r.location_id, l.building_name
        FROM rooms r
        LEFT JOIN locations l ON r.location_id = l.id
    """

    def __init__(self, database_manager):
        """
        Initialize the room manager with database connection.

        Args:
            database_manager: Database manager instance
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def get_room(self, room_id) -> Room:
        """
        Get one room with its building.

        Args:
            room_id: Room id, as stored or as taken from a URL

        Returns:
            Room: The room

        Raises:
            NotFound: No such room
        """
        room_id = parse_room_id(room_id)
        row = self.db.execute_query(
            self._ROOM_QUERY + " WHERE r.id = ?", (room_id,), fetch_all=False
        )
        if not row:
            raise NotFound(f"Room {room_id} not found")
        return Room(**row)

    def get_all_rooms(self) -> List[Room]:
        """Get all rooms ordered by building name, then room number."""
        rows = self.db.execute_query(
            self._ROOM_QUERY + " ORDER BY l.building_name ASC, r.room_number ASC"
        )
        return [Room(**row) for row in rows]

    def get_room_count(self) -> int:
        return self.db.count('rooms')

    def get_all_locations(self) -> List[Location]:
        rows = self.db.select('locations', columns=('id', 'building_name'),
                              order_by=[('building_name', False)])
        return [Location(**row) for row in rows]

    def create_location(self, building_name: str) -> Location:
        """
        Create a building.

        Args:
            building_name (str): Building name

        Returns:
            Location: The new location
        """
        building_name = building_name.strip() if isinstance(building_name, str) else ''
        if not building_name:
            raise ValidationError('Building name is required')

        row = self.db.insert('locations', {'building_name': building_name})
        self.logger.info(f"Location created: {building_name} (ID: {row['id']})")
        return Location(id=row['id'], building_name=row['building_name'])

    def create_room(self, room_number: str, location_id) -> Room:
        """
        Create a room inside an existing building.

        Args:
            room_number (str): Room number as printed on the door
            location_id: Building id

        Returns:
            Room: The new room

        Raises:
            ValidationError: Room number missing or location id malformed
            NotFound: No such building
        """
        room_number = str(room_number).strip() if isinstance(room_number, (str, int)) else ''
        if not room_number:
            raise ValidationError('Room number is required')
        try:
            location_id = int(location_id)
        except (TypeError, ValueError):
            raise ValidationError('A valid location is required') from None

        location = self.db.select('locations', {'id': location_id}, single=True)
        if not location:
            raise NotFound(f"Location {location_id} not found")

        row = self.db.insert('rooms', {'room_number': room_number, 'location_id': location_id})
        self.logger.info(
            f"Room created: {location['building_name']} {room_number} (ID: {row['id']})"
        )
        return Room(id=row['id'], room_number=row['room_number'],
                    location_id=row['location_id'], building_name=location['building_name'])
