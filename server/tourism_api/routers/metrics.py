"""Prometheus scrape endpoint."""

from typing import List

from fastapi import APIRouter, Query, Response
from prometheus_client import CONTENT_TYPE_LATEST

from ..core.observability import get_prometheus_metrics

router = APIRouter(tags=["observability"])


@router.get("/metrics", response_class=Response)
async def metrics(names: List[str] = Query(default=[], alias="name[]")) -> Response:
    """Expose request and booking counters; repeat ``name[]`` to narrow the output."""
    return Response(content=get_prometheus_metrics(names), media_type=CONTENT_TYPE_LATEST)
