"""GTFS test fixture builder - creates in-memory Caltrain-like ZIP files and directories.

The timetable has a weekday service ``WD`` and a weekend service ``WE``:

=====  =====  ============  ======  ================  ==========  ==========
trip   svc    direction     stops   leaves SF / SJ    Palo Alto   arrives
=====  =====  ============  ======  ================  ==========  ==========
102    WD     southbound    22      08:00 (SF)        08:42       09:03 SJ
402    WD     southbound    14      08:30 (SF)        09:06       09:22 SJ
502    WD     southbound    7       09:00 (SF)        09:18       09:36 SJ
104    WD     southbound    22      24:10 (SF)        24:52       25:13 SJ
101    WD     northbound    22      07:00 (SJ)        07:21       08:03 SF
202    WE     southbound    22      10:00 (SF)        10:42       11:03 SJ
=====  =====  ============  ======  ================  ==========  ==========

Thanksgiving 2025 (Thu 27 Nov) runs the weekend service; Christmas 2025
(Thu 25 Dec) removes weekday service with no replacement.
"""

from __future__ import annotations

import io
import zipfile
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

# Station bases in line order (7001 = San Francisco ... 7026 = San Jose Diridon)
LOCAL_STOPS = (1, 2, 3, 4, 5, 6, 8, 9, 10, 11, 12, 13, 14, 16, 17, 19, 20, 21, 22, 23, 24, 26)
LIMITED_STOPS = (1, 4, 6, 8, 9, 11, 13, 14, 16, 17, 19, 21, 22, 26)
EXPRESS_STOPS = (1, 6, 14, 17, 21, 22, 26)

SF_SB = "70012"
PA_SB = "70172"
SJ_SB = "70262"


def gtfs_time(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}:00"


def stop_time_rows(
    trip_id: str,
    stops: tuple[int, ...],
    start: str,
    step: int,
    platform: str,
) -> list[str]:
    """Rows for one trip, one stop every ``step`` minutes from ``start`` (HH:MM)."""
    hours, minutes = (int(part) for part in start.split(":"))
    first = hours * 60 + minutes
    rows = []
    for index, base in enumerate(stops):
        at = gtfs_time(first + index * step)
        rows.append(f"{trip_id},{at},{at},{7000 + base}{platform},{index + 1}")
    return rows


def _stop_times_txt() -> str:
    rows = ["trip_id,arrival_time,departure_time,stop_id,stop_sequence"]
    rows += stop_time_rows("102", LOCAL_STOPS, "08:00", 3, "2")
    rows += stop_time_rows("402", LIMITED_STOPS, "08:30", 4, "2")
    rows += stop_time_rows("502", EXPRESS_STOPS, "09:00", 6, "2")
    rows += stop_time_rows("104", LOCAL_STOPS, "24:10", 3, "2")
    rows += stop_time_rows("101", tuple(reversed(LOCAL_STOPS)), "07:00", 3, "1")
    rows += stop_time_rows("202", LOCAL_STOPS, "10:00", 3, "2")
    return "\n".join(rows) + "\n"


STOP_TIMES_TXT = _stop_times_txt()

TRIPS_TXT = """\
route_id,service_id,trip_id,trip_headsign,trip_short_name,direction_id,shape_id
Local Weekday,WD,102,San Jose Diridon,102,1,sb
Limited,WD,402,San Jose Diridon,402,1,sb
Express,WD,502,San Jose Diridon,502,1,sb
Local Weekday,WD,104,San Jose Diridon,104,1,sb
Local Weekday,WD,101,San Francisco,101,0,nb
Local Weekend,WE,202,San Jose Diridon,202,1,sb
"""

CALENDAR_TXT = """\
service_id,monday,tuesday,wednesday,thursday,friday,saturday,sunday,start_date,end_date
WD,1,1,1,1,1,0,0,20250101,20261231
WE,0,0,0,0,0,1,1,20250101,20261231
"""

CALENDAR_DATES_TXT = """\
service_id,date,exception_type
WD,20251127,2
WE,20251127,1
WD,20251225,2
"""


def gtfs_tables(
    stop_times: str = STOP_TIMES_TXT,
    trips: str = TRIPS_TXT,
    calendar: str = CALENDAR_TXT,
    calendar_dates: str = CALENDAR_DATES_TXT,
    extra_files: dict[str, str] | None = None,
    exclude_files: set[str] | None = None,
) -> dict[str, str]:
    files = {
        "stop_times.txt": stop_times,
        "trips.txt": trips,
        "calendar.txt": calendar,
        "calendar_dates.txt": calendar_dates,
    }
    if extra_files:
        files.update(extra_files)
    return {name: content for name, content in files.items() if name not in (exclude_files or set())}


def build_gtfs_zip(**kwargs: object) -> bytes:
    """Build an in-memory GTFS ZIP file.

    Accepts the same keyword arguments as ``gtfs_tables``: one per table
    (``stop_times``, ``trips``, ``calendar``, ``calendar_dates``) plus
    ``extra_files`` and ``exclude_files`` (e.g. ``{"trips.txt"}``).

    Returns:
        bytes of the ZIP file.
    """
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in gtfs_tables(**kwargs).items():  # type: ignore[arg-type]
            zf.writestr(name, content)
    return buf.getvalue()


def write_gtfs_dir(path: Path, **kwargs: object) -> Path:
    """Write the tables as loose files under ``path`` (the local fallback layout)."""
    path.mkdir(parents=True, exist_ok=True)
    for name, content in gtfs_tables(**kwargs).items():  # type: ignore[arg-type]
        (path / name).write_text(content, encoding="utf-8")
    return path


def build_invalid_zip() -> bytes:
    """Build bytes that are not a valid ZIP."""
    return b"This is not a ZIP file at all."
