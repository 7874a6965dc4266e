from fastapi import APIRouter
from fastapi import File, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from typing import List, Optional
import logging

from ..config import settings
from ..core.aggregator import GroupBy, Indicator, pivot, summarize, MIN_WEEK, MAX_WEEK
from ..core.errors import InvalidQueryError, SummaryError
from ..core.report import write_report
from ..core.roster import find_duplicate_codes, region_options
from ..storage.session import DataPathsDep, SnapshotCacheDep
from ..utils.services import query_timer, read_capped, safe_upload_name, store_upload
from .schemas.epi import (
    DuplicateEntry, HealthResponse, PivotResponse, ReportRequest, ReportResponse,
    RisOptions, RosterIssues, SavedFile, StoredFile, SummaryResponse, UploadResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
def health_check(cache: SnapshotCacheDep) -> HealthResponse:
    """Liveness plus what the current snapshot was loaded from"""
    snapshot = cache.current
    if snapshot is None:
        return HealthResponse(snapshot={"loaded": False})
    return HealthResponse(
        snapshot={
            "loaded": True,
            "directory": str(snapshot.stamp.directory),
            "loaded_at": snapshot.loaded_at.isoformat(),
            "iras": len(snapshot.iras),
            "edas": len(snapshot.edas),
            "febriles": len(snapshot.febs),
            "maestro": len(snapshot.roster),
        }
    )


# =============================================================================
# EPI QUERIES
# =============================================================================


@router.get("/api/epi/ris-options", response_model=RisOptions)
def get_ris_options(cache: SnapshotCacheDep) -> RisOptions:
    """Region labels available in the facility roster"""
    snapshot = cache.get_snapshot()
    return RisOptions(options=region_options(snapshot.roster))


@router.get("/api/epi/pivot", response_model=PivotResponse)
@query_timer
def get_weekly_pivot(
    cache: SnapshotCacheDep,
    ano: int,
    indicator: str,
    groupBy: str = "estab",
    semana_ini: int = MIN_WEEK,
    semana_fin: int = MAX_WEEK,
    ris: Optional[str] = None,
) -> PivotResponse:
    """Weekly pivot of one surveillance indicator by facility or RIS"""
    try:
        ind = Indicator.parse(indicator)
        group = GroupBy.parse(groupBy)
    except InvalidQueryError as e:
        logger.warning(f"Pivot rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = pivot(
            cache.get_snapshot(),
            year=ano,
            indicator=ind,
            group_by=group,
            week_start=semana_ini,
            week_end=semana_fin,
            ris=ris,
        )
        return PivotResponse.from_result(result)
    except Exception as e:
        logger.error(f"Pivot error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Pivot error: {str(e)}")


@router.get("/api/epi/summary", response_model=SummaryResponse)
@query_timer
def get_weekly_summary(
    cache: SnapshotCacheDep,
    ano: int,
    semana: int,
    ris: Optional[str] = None,
    ubigeo: Optional[str] = Query(None, pattern=r"^\d{0,6}$"),
    includeAll: bool = True,
) -> SummaryResponse:
    """Facilities notified / not notified for one epidemiological week"""
    try:
        result = summarize(
            cache.get_snapshot(),
            year=ano,
            week=semana,
            ris=ris,
            include_all=includeAll,
            ubigeo=ubigeo,
        )
    except InvalidQueryError as e:
        logger.warning(f"Summary rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except SummaryError as e:
        raise HTTPException(status_code=500, detail=f"Summary error: {str(e.__cause__ or e)}")
    except Exception as e:
        logger.error(f"Summary error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Summary error: {str(e)}")

    return SummaryResponse.from_result(result)


@router.get("/api/diag/maestro-issues", response_model=RosterIssues)
def get_roster_issues(cache: SnapshotCacheDep) -> RosterIssues:
    """Roster rows without a usable RENAES and codes that appear more than once"""
    snapshot = cache.get_snapshot()
    duplicates = find_duplicate_codes(snapshot.roster_rows)
    return RosterIssues(
        vacios=snapshot.roster.skipped,
        duplicados=[DuplicateEntry(renaes=d.code, count=d.count) for d in duplicates],
    )


# =============================================================================
# FILES
# =============================================================================


@router.post("/api/upload", response_model=UploadResponse)
async def upload_sources(
    cache: SnapshotCacheDep,
    paths: DataPathsDep,
    files: List[UploadFile] = File(...),
) -> UploadResponse:
    """Store uploaded source CSVs (fixed filenames only) and reload the snapshot.

    Every file is checked before any is written, so a rejected request leaves
    the uploads directory untouched.
    """
    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    accepted = []

    for upload in files:
        name = safe_upload_name(upload.filename)
        if name is None:
            logger.warning(f"Upload rejected, name not allowed: {upload.filename}")
            raise HTTPException(status_code=400, detail=f"Nombre no permitido: {upload.filename}")

        content = await read_capped(upload, max_bytes)
        if content is None:
            logger.warning(f"Upload rejected, too large: {upload.filename}")
            raise HTTPException(
                status_code=400, detail=f"Archivo supera {settings.MAX_UPLOAD_MB} MB."
            )
        if not content:
            logger.warning(f"Upload rejected, empty file: {upload.filename}")
            raise HTTPException(status_code=400, detail=f"Archivo vacío: {upload.filename}")

        accepted.append((name, content))

    root = paths.uploads()
    saved = []
    try:
        for name, content in accepted:
            dest = await run_in_threadpool(store_upload, content, root, name)
            logger.info(f"Upload saved: {dest} ({len(content)} bytes)")
            saved.append(SavedFile(file=name, path=str(dest)))
    finally:
        # fuerza recarga del snapshot en la próxima consulta
        if saved:
            cache.invalidate()

    return UploadResponse(saved=saved, count=len(saved))


@router.get("/api/files", response_model=List[StoredFile])
def list_uploaded_files(paths: DataPathsDep) -> List[StoredFile]:
    """CSV files currently in the uploads directory"""
    root = paths.uploads()
    files = [StoredFile(name=p.name, size=p.stat().st_size) for p in root.glob("*.csv") if p.is_file()]
    return sorted(files, key=lambda f: f.name)


# =============================================================================
# REPORT
# =============================================================================


@router.post("/api/reporte/notificacion-semanal", response_model=ReportResponse)
@query_timer
def build_weekly_report(
    cache: SnapshotCacheDep,
    paths: DataPathsDep,
    payload: ReportRequest,
) -> ReportResponse:
    """Weekly notification table over the whole roster, also saved as CSV"""
    try:
        result = summarize(
            cache.get_snapshot(),
            year=payload.anio,
            week=payload.semana,
            ris=payload.ris,
            include_all=True,
            ubigeo=payload.ubigeo,
        )
        write_report(result, paths.report_path(settings.REPORT_FILENAME))
    except InvalidQueryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Report error: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Report error: {str(e)}")

    return ReportResponse.from_summary(result)


@router.get("/api/reporte/notificacion-semanal.csv")
def download_weekly_report(paths: DataPathsDep) -> FileResponse:
    """Last report written by POST /api/reporte/notificacion-semanal"""
    path = paths.report_path(settings.REPORT_FILENAME)
    if not path.is_file():
        raise HTTPException(
            status_code=404,
            detail="Aún no has generado el reporte. Llama primero a POST /api/reporte/notificacion-semanal",
        )
    return FileResponse(path, media_type="text/csv; charset=utf-8", filename=settings.REPORT_FILENAME)
