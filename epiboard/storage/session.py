from typing import Annotated

from fastapi import Depends, Request

from .cache import SnapshotCache
from .paths import DataPaths


def get_snapshot_cache(request: Request) -> SnapshotCache:
    return request.app.state.snapshot_cache


def get_data_paths(request: Request) -> DataPaths:
    return request.app.state.data_paths


SnapshotCacheDep = Annotated[SnapshotCache, Depends(get_snapshot_cache)]
DataPathsDep = Annotated[DataPaths, Depends(get_data_paths)]
