"""
"Tabla notificante por establecimiento": the weekly notification report as a
semicolon-delimited file, laid out from an already computed summary.
"""

import csv
import logging
import os
import tempfile
from pathlib import Path
from typing import List

from .aggregator import SummaryResult

logger = logging.getLogger(__name__)

COLUMNS = [
    "RIS", "ESTABLECIMIENTO", "RENAES", "IRA", "NEUMONIAS", "SOB.ASMA",
    "EDA ACUOSA", "DISENTERICA", "FEB", "OBSERVACIONES",
]


def report_lines(summary: SummaryResult) -> List[List[str]]:
    lines = [
        [
            f"SEMANA EPIDEMIOLÓGICA {summary.week}",
            f"AÑO {summary.year}",
            f"UBIGEO {summary.ubigeo or ''}",
            f"RIS {summary.ris or ''}",
        ],
        ["ESTABLECIMIENTOS NOTIFICADOS", str(summary.notified_count)],
        ["ESTABLECIMIENTOS NO NOTIFICADOS", str(summary.non_notified_count)],
        [],
        COLUMNS,
    ]
    for f in summary.rows:
        c = f.counts
        lines.append([
            f.ris, f.name, f.renaes,
            str(c.ira), str(c.neumonias), str(c.sob_asma),
            str(c.eda_acuosa), str(c.disenterica), str(c.feb),
            "",
        ])
    return lines


def write_report(summary: SummaryResult, path: Path) -> Path:
    """Write the report next to the uploads, replacing any previous one"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp = tempfile.mkstemp(prefix=".report-", suffix=".csv", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8-sig", newline="") as fh:
            writer = csv.writer(fh, delimiter=";", quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
            writer.writerows(report_lines(summary))
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise

    logger.info(f"Report written: {path} ({len(summary.rows)} establecimientos)")
    return path
