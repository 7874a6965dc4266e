"""
Shared fixtures: a small seed directory with the four tracked sources.

Facilities in the roster (``eess_maestro.csv``):

    150140D101  CS Alfa        RIS NORTE  150140
    150140D102  PS Beta        RIS SUR    150141
    150140D103  CS Gamma       RIS NORTE  (derived from code)
    150140D104  PS Delta bis   RIS SUR    150141   (listed twice)

``150140X999`` reports in iras.csv but is not in the roster.
"""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from epiboard.config import settings
from epiboard.storage.cache import Snapshot, SnapshotCache

IRAS_CSV = """ano;semana;renaes;ira_no_neu;neu_men5;sob_asma
2024;10;150140D101;5;1;2
2024;10;150140d102;3;0;0
2024;11;150140D101;4;0;1
2023;10;150140D101;9;9;9
2024;10;sin codigo;7;0;0
2024;10;150140X999;2;0;0
"""

EDAS_CSV = """anio,se,e_salud,daa_c1,daa_c2,dis_c1
2024,10,150140D101,1,2,0
2024,10,150140D103,0,0,0
"""

FEBRILES_CSV = """ano;semana;renaes;feb_tot;feb_men1
2024;10;150140D102;4;1
2024;10;150140D101;0;2
"""

MAESTRO_CSV = """renaes;raz_soc;ris;ubigeo
150140D101;CS Alfa;01 RIS NORTE;150140
150140D102;PS Beta;02 RIS SUR;150141
150140D103;CS Gamma;01 RIS NORTE;
150140D104;PS Delta;02 RIS SUR;150141
150140D104;PS Delta bis;02 RIS SUR;150141
;Sin codigo;01 RIS NORTE;
"""


def write_sources(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "iras.csv").write_text(IRAS_CSV, encoding="utf-8")
    (directory / "edas.csv").write_text(EDAS_CSV, encoding="utf-8")
    (directory / "febriles.csv").write_text(FEBRILES_CSV, encoding="utf-8")
    (directory / "eess_maestro.csv").write_text(MAESTRO_CSV, encoding="utf-8")
    return directory


@pytest.fixture
def seed_dir(tmp_path: Path) -> Path:
    """Seed data directory holding the four source files."""
    return write_sources(tmp_path / "data")


@pytest.fixture
def snapshot(seed_dir: Path) -> Snapshot:
    """Snapshot built from the seed directory."""
    return SnapshotCache(directory=lambda: seed_dir).get_snapshot()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def client(monkeypatch, seed_dir: Path, upload_dir: Path):
    """API client whose uploads dir starts empty, so seed data is served."""
    monkeypatch.setattr(settings, "DATA_DIR", seed_dir)
    monkeypatch.setattr(settings, "UPLOAD_DIR", upload_dir)

    from epiboard.main import app

    with TestClient(app) as test_client:
        yield test_client
