from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from ...core.aggregator import PivotResult, PivotSeries, SummaryResult, CategoryCounts


class PivotRow(BaseModel):
    label: str
    code: Optional[str] = None
    values: List[int]
    total: int

    @classmethod
    def from_series(cls, series: PivotSeries) -> "PivotRow":
        return cls(label=series.label, code=series.code, values=list(series.values), total=series.total)


class PivotTotalRow(BaseModel):
    label: str = "TOTAL"
    values: List[int]
    total: int


class PivotResponse(BaseModel):
    """Weekly pivot of one indicator"""

    indicator: str
    groupBy: str
    semanas: List[int]
    rows: List[PivotRow]
    totalFila: PivotTotalRow

    @classmethod
    def from_result(cls, result: PivotResult) -> "PivotResponse":
        return cls(
            indicator=result.indicator.value,
            groupBy=result.group_by.value,
            semanas=list(result.weeks),
            rows=[PivotRow.from_series(s) for s in result.rows],
            totalFila=PivotTotalRow(
                label=result.total_row.label,
                values=list(result.total_row.values),
                total=result.total_row.total,
            ),
        )


class CategoryTotals(BaseModel):
    ira: int = 0
    neumonias: int = 0
    sob_asma: int = 0
    eda_acuosa: int = 0
    disenterica: int = 0
    feb: int = 0

    @classmethod
    def from_counts(cls, counts: CategoryCounts) -> "CategoryTotals":
        return cls(**counts.as_dict())


class SummaryRow(CategoryTotals):
    renaes: str
    establecimiento: str
    ris: str
    ubigeo: Optional[str] = None
    notificado: bool


class SummaryResponse(BaseModel):
    """Notified / non-notified facilities for one epidemiological week"""

    ano: int
    semana: int
    ubigeo: Optional[str] = None
    ris: Optional[str] = None
    includeAll: bool
    conteo_estab_notificados: int
    conteo_estab_no_notificados: int
    totales: CategoryTotals
    filas: List[SummaryRow]

    @classmethod
    def from_result(cls, result: SummaryResult) -> "SummaryResponse":
        return cls(
            ano=result.year,
            semana=result.week,
            ubigeo=result.ubigeo,
            ris=result.ris,
            includeAll=result.include_all,
            conteo_estab_notificados=result.notified_count,
            conteo_estab_no_notificados=result.non_notified_count,
            totales=CategoryTotals.from_counts(result.totals),
            filas=[
                SummaryRow(
                    renaes=f.renaes,
                    establecimiento=f.name,
                    ris=f.ris,
                    ubigeo=f.ubigeo,
                    notificado=f.notified,
                    **f.counts.as_dict(),
                )
                for f in result.rows
            ],
        )


class RisOptions(BaseModel):
    options: List[str]


class DuplicateEntry(BaseModel):
    renaes: str
    count: int


class RosterIssues(BaseModel):
    vacios: int
    duplicados: List[DuplicateEntry]


class SavedFile(BaseModel):
    file: str
    path: str


class UploadResponse(BaseModel):
    ok: bool = True
    saved: List[SavedFile]
    count: int


class StoredFile(BaseModel):
    name: str
    size: int


class ReportRequest(BaseModel):
    anio: int = Field(..., ge=1900, le=2100)
    semana: int = Field(..., ge=1, le=53)
    ubigeo: Optional[str] = Field(None, pattern=r"^\d{0,6}$")
    ris: Optional[str] = None


class ReportRow(BaseModel):
    ris: str
    establecimiento: str
    renaes: str
    ira: int
    neumonias: int
    sob_asma: int
    eda_acuosa: int
    disenterica: int
    feb: int
    observaciones: str = ""


class ReportResponse(BaseModel):
    anio: int
    semana: int
    ubigeo: Optional[str] = None
    ris: Optional[str] = None
    total_establecimientos: int
    establecimientos_notificados: int
    establecimientos_no_notificados: int
    filas: List[ReportRow]

    @classmethod
    def from_summary(cls, result: SummaryResult) -> "ReportResponse":
        return cls(
            anio=result.year,
            semana=result.week,
            ubigeo=result.ubigeo,
            ris=result.ris,
            total_establecimientos=len(result.rows),
            establecimientos_notificados=result.notified_count,
            establecimientos_no_notificados=result.non_notified_count,
            filas=[
                ReportRow(ris=f.ris, establecimiento=f.name, renaes=f.renaes, **f.counts.as_dict())
                for f in result.rows
            ],
        )


class HealthResponse(BaseModel):
    ok: bool = True
    snapshot: Dict[str, Any] = {}
