"""Table access over a zipped timetable archive or an unpacked directory."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Self

from commuter_api.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = get_logger(__name__)

# Tables required to instantiate a schedule
REQUIRED_FILES = frozenset({"stop_times.txt", "trips.txt", "calendar.txt", "calendar_dates.txt"})

# Some exporters prepend a UTF-8 BOM to every table
TABLE_ENCODING = "utf-8-sig"


class MissingRequiredFileError(Exception):
    """Raised when a required GTFS file is missing from the source."""


class GtfsTableReader(Protocol):
    def open_file(self, filename: str) -> io.TextIOBase: ...

    def close(self) -> None: ...


def check_required_files(names: Iterable[str], source: str) -> None:
    """Raise unless every required table is among ``names``."""
    missing = REQUIRED_FILES.difference(names)
    if missing:
        msg = f"Missing required GTFS files in {source}: {sorted(missing)}"
        raise MissingRequiredFileError(msg)


class _ClosingReader:
    """Context-manager plumbing shared by the concrete readers."""

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class GtfsZipReader(_ClosingReader):
    """Tables inside an in-memory ZIP archive.

    Raises ``zipfile.BadZipFile`` for non-archive bytes and
    :class:`MissingRequiredFileError` when a required table is absent.
    """

    def __init__(self, data: bytes) -> None:
        self._zip = zipfile.ZipFile(io.BytesIO(data))
        names = self._zip.namelist()
        try:
            check_required_files(names, "archive")
        except MissingRequiredFileError:
            self._zip.close()
            raise
        logger.debug("Timetable archive opened", tables=len(names))

    def list_files(self) -> list[str]:
        return self._zip.namelist()

    def open_file(self, filename: str) -> io.TextIOWrapper:
        return io.TextIOWrapper(self._zip.open(filename), encoding=TABLE_ENCODING)

    def close(self) -> None:
        self._zip.close()


class GtfsDirectoryReader(_ClosingReader):
    """Tables unpacked as ``.txt`` files in a local directory.

    Open handles are tracked and released by :meth:`close`.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        if not self._path.is_dir():
            msg = f"Local GTFS directory not found: {self._path}"
            raise FileNotFoundError(msg)

        check_required_files(
            (entry.name for entry in self._path.iterdir() if entry.is_file()), str(self._path)
        )
        self._handles: list[io.TextIOBase] = []
        logger.debug("Timetable directory opened", path=str(self._path))

    def open_file(self, filename: str) -> io.TextIOBase:
        handle = (self._path / filename).open(encoding=TABLE_ENCODING, newline="")
        self._handles.append(handle)
        return handle

    def close(self) -> None:
        while self._handles:
            self._handles.pop().close()
