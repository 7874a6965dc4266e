from dataclasses import dataclass
from pathlib import Path

IRAS_FILE = "iras.csv"
EDAS_FILE = "edas.csv"
FEBRILES_FILE = "febriles.csv"
INDIVIDUAL_FILE = "individual.csv"
ROSTER_FILE = "eess_maestro.csv"

ALLOWED_FILES = frozenset({IRAS_FILE, EDAS_FILE, FEBRILES_FILE, INDIVIDUAL_FILE, ROSTER_FILE})


def has_known_csv(directory: Path) -> bool:
    return any((directory / name).is_file() for name in ALLOWED_FILES)


@dataclass(frozen=True)
class DataPaths:
    """Where source CSVs live: uploads if any were uploaded, else seed data"""

    upload_dir: Path
    data_dir: Path

    def uploads(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    def resolve(self) -> Path:
        up = self.uploads()
        return up if has_known_csv(up) else self.data_dir

    def report_path(self, filename: str) -> Path:
        # el reporte siempre va a la carpeta escribible
        return self.uploads() / filename
