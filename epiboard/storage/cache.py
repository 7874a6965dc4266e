"""
Process-wide snapshot of the surveillance sources.

The snapshot is rebuilt only when one of the tracked files changes on disk (or
after ``invalidate()``), and is swapped in one assignment so readers never see
tables from one generation next to stamps from another.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple

from ..core.csv_reader import Row, read_csv
from ..core.roster import RosterIndex, build_roster_index, find_duplicate_codes
from .paths import EDAS_FILE, FEBRILES_FILE, IRAS_FILE, ROSTER_FILE

logger = logging.getLogger(__name__)

EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)

# filas de solo lectura, compartidas por todas las consultas
Table = Tuple[Mapping[str, str], ...]


def file_mtime(path: Path) -> datetime:
    """UTC modification time, or ``EPOCH_MIN`` when the file is absent"""
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except OSError:
        return EPOCH_MIN


@dataclass(frozen=True)
class SourceStamp:
    directory: Path
    iras: datetime
    edas: datetime
    febs: datetime
    roster: datetime


@dataclass(frozen=True)
class Snapshot:
    iras: Table
    edas: Table
    febs: Table
    roster: RosterIndex
    roster_rows: Table
    stamp: SourceStamp
    loaded_at: datetime


class SnapshotCache:
    def __init__(
        self,
        directory: Callable[[], Path],
        mtime: Callable[[Path], datetime] = file_mtime,
        loader: Callable[[Path], List[Row]] = read_csv,
    ):
        self._directory = directory
        self._mtime = mtime
        self._loader = loader
        self._lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self.rebuilds = 0

    @property
    def current(self) -> Optional[Snapshot]:
        """Last published snapshot, without checking freshness"""
        return self._snapshot

    def _stamp(self, directory: Path) -> SourceStamp:
        return SourceStamp(
            directory=directory,
            iras=self._mtime(directory / IRAS_FILE),
            edas=self._mtime(directory / EDAS_FILE),
            febs=self._mtime(directory / FEBRILES_FILE),
            roster=self._mtime(directory / ROSTER_FILE),
        )

    def _load(self, path: Path) -> Table:
        try:
            return tuple(MappingProxyType(row) for row in self._loader(path))
        except Exception as e:
            logger.warning(f"Could not load {path.name}, using empty table: {e}")
            return ()

    def _build(self, stamp: SourceStamp) -> Snapshot:
        directory = stamp.directory
        iras = self._load(directory / IRAS_FILE)
        edas = self._load(directory / EDAS_FILE)
        febs = self._load(directory / FEBRILES_FILE)
        roster_rows = self._load(directory / ROSTER_FILE)
        roster = build_roster_index(roster_rows)

        logger.info(
            f"Snapshot rebuilt from {directory}: iras={len(iras)} edas={len(edas)} "
            f"febriles={len(febs)} maestro={len(roster)} "
            f"(sin codigo={roster.skipped}, duplicados={len(find_duplicate_codes(roster_rows))})"
        )
        return Snapshot(
            iras=iras,
            edas=edas,
            febs=febs,
            roster=roster,
            roster_rows=roster_rows,
            stamp=stamp,
            loaded_at=datetime.now(timezone.utc),
        )

    def get_snapshot(self) -> Snapshot:
        """Return the current snapshot, rebuilding it if any source changed"""
        with self._lock:
            stamp = self._stamp(self._directory())
            snapshot = self._snapshot
            if snapshot is None or snapshot.stamp != stamp:
                snapshot = self._build(stamp)
                self._snapshot = snapshot
                self.rebuilds += 1
            return snapshot

    def invalidate(self) -> None:
        """Force the next ``get_snapshot()`` to rebuild"""
        with self._lock:
            self._snapshot = None
        logger.info("Snapshot invalidated")
