"""Caltrain station reference data.

``STATIONS`` is ordered by geography, north to south (San Francisco to
Gilroy). Travel direction is derived from list position, never from names.
"""

from __future__ import annotations

from dataclasses import dataclass

from commuter_api.models.enums import Direction


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    code: str
    lat: float
    lon: float

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "coordinates": {"lat": self.lat, "lng": self.lon},
        }


STATIONS: tuple[Station, ...] = (
    Station("sf", "San Francisco (4th & King)", "SF", 37.7765, -122.3943),
    Station("22nd", "22nd Street", "22ND", 37.7571, -122.3921),
    Station("bayshore", "Bayshore", "BAYSHORE", 37.7089, -122.4015),
    Station("ssf", "South San Francisco", "SSF", 37.6569, -122.4061),
    Station("sb", "San Bruno", "SB", 37.6309, -122.4111),
    Station("mb", "Millbrae", "MB", 37.6000, -122.3867),
    Station("burlingame", "Burlingame", "BURLINGAME", 37.5793, -122.3459),
    Station("sm", "San Mateo", "SM", 37.5683, -122.3244),
    Station("hayward-park", "Hayward Park", "HAYWARD", 37.5530, -122.3090),
    Station("hillsdale", "Hillsdale", "HILLSDALE", 37.5378, -122.2971),
    Station("belmont", "Belmont", "BELMONT", 37.5206, -122.2758),
    Station("sc", "San Carlos", "SC", 37.5071, -122.2603),
    Station("rw", "Redwood City", "RW", 37.4854, -122.2314),
    Station("mp", "Menlo Park", "MP", 37.4544, -122.1819),
    Station("pa", "Palo Alto", "PA", 37.4429, -122.1646),
    Station("stanford", "Stanford", "STANFORD", 37.4294, -122.1713),
    Station("cal-ave", "California Ave", "CALAVEUE", 37.4292, -122.1421),
    Station("san-antonio", "San Antonio", "SANANTONIO", 37.4070, -122.1065),
    Station("mv", "Mountain View", "MV", 37.3946, -122.0766),
    Station("sunnyvale", "Sunnyvale", "SUNNYVALE", 37.3784, -122.0308),
    Station("lawrence", "Lawrence", "LAWRENCE", 37.3702, -121.9968),
    Station("santa-clara", "Santa Clara", "SANTACLARA", 37.3529, -121.9364),
    Station("college-park", "College Park", "COLLEGEPARK", 37.3427, -121.9145),
    Station("diridon", "San Jose Diridon", "DIRIDON", 37.3297, -121.9024),
    Station("tamien", "Tamien", "TAMIEN", 37.3115, -121.8841),
    Station("capitol", "Capitol", "CAPITOL", 37.2880, -121.8423),
    Station("blossom-hill", "Blossom Hill", "BLOSSOMHILL", 37.2526, -121.7979),
    Station("morgan-hill", "Morgan Hill", "MORGANHILL", 37.1296, -121.6504),
    Station("san-martin", "San Martin", "SANMARTIN", 37.0858, -121.6106),
    Station("gilroy", "Gilroy", "GILROY", 37.0033, -121.5666),
)

_BY_ID = {station.id: station for station in STATIONS}
_INDEX_BY_ID = {station.id: index for index, station in enumerate(STATIONS)}

# Station code -> GTFS stop base. The platform digit is appended per direction.
STOP_CODE_MAPPING: dict[str, str] = {
    "SF": "7001",
    "22ND": "7002",
    "BAYSHORE": "7003",
    "SSF": "7004",
    "SB": "7005",
    "MB": "7006",
    "BURLINGAME": "7008",
    "SM": "7009",
    "HAYWARD": "7010",
    "HILLSDALE": "7011",
    "BELMONT": "7012",
    "SC": "7013",
    "RW": "7014",
    "MP": "7016",
    "PA": "7017",
    "STANFORD": "253774",
    "CALAVEUE": "7019",
    "SANANTONIO": "7020",
    "MV": "7021",
    "SUNNYVALE": "7022",
    "LAWRENCE": "7023",
    "SANTACLARA": "7024",
    "COLLEGEPARK": "7025",
    "DIRIDON": "7026",
    "TAMIEN": "7027",
    "CAPITOL": "7028",
    "BLOSSOMHILL": "7029",
    "MORGANHILL": "7030",
    "SANMARTIN": "7031",
    "GILROY": "7032",
}

# Stanford is a special-event stop with its own platform ids
_SPECIAL_STOP_IDS: dict[str, dict[Direction, str]] = {
    "253774": {Direction.NORTHBOUND: "2537740", Direction.SOUTHBOUND: "2537744"},
}


class UnknownStationError(Exception):
    """Raised when a station id is not part of the line."""


def get_station_by_id(station_id: str) -> Station | None:
    return _BY_ID.get(station_id)


def require_station(station_id: str) -> Station:
    """Return the station or raise UnknownStationError."""
    station = _BY_ID.get(station_id)
    if station is None:
        raise UnknownStationError(f"Unknown station id: {station_id!r}")
    return station


def station_index(station_id: str) -> int:
    """Position of the station in the north-to-south ordering."""
    try:
        return _INDEX_BY_ID[station_id]
    except KeyError as exc:
        raise UnknownStationError(f"Unknown station id: {station_id!r}") from exc


def gtfs_stop_id(station_code: str, direction: Direction) -> str | None:
    """Map a station code to its GTFS platform stop id for a direction.

    Returns None for codes absent from the mapping table.
    """
    base = STOP_CODE_MAPPING.get(station_code.upper())
    if base is None:
        return None

    special = _SPECIAL_STOP_IDS.get(base)
    if special is not None:
        return special[direction]

    platform = "1" if direction is Direction.NORTHBOUND else "2"
    return f"{base}{platform}"
