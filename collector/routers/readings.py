from typing import Optional

from fastapi import APIRouter, Query, Request

from collector.responses import PrettyJSONResponse
from collector.api.readings.handlers import (
    handle_upload, handle_devices, handle_device_history, handle_filtered_data,
    handle_stats, handle_health, handle_config
)

router = APIRouter(prefix="/api")

@router.post("/data", response_class=PrettyJSONResponse, status_code=201)
async def upload_reading(request: Request):
    return await handle_upload(request)

@router.get("/devices", response_class=PrettyJSONResponse)
async def latest_devices(request: Request):
    return await handle_devices(request)

@router.get("/device/{device_id}/history", response_class=PrettyJSONResponse)
async def device_history(
    request: Request,
    device_id: str,
    limit: Optional[str] = Query(None, description="Maximum records per page"),
    offset: Optional[str] = Query(None, description="Records to skip"),
    count: Optional[str] = Query(None, description="Set to 'true' to include total_count")
):
    return await handle_device_history(request, device_id, limit, offset, count)

@router.get("/data", response_class=PrettyJSONResponse)
async def filtered_data(
    request: Request,
    device_id: Optional[str] = Query(None, description="Only readings from this device"),
    from_date: Optional[str] = Query(None, description="Inclusive lower bound, ISO 8601"),
    to_date: Optional[str] = Query(None, description="Inclusive upper bound, ISO 8601"),
    limit: Optional[str] = Query(None, description="Maximum records per page"),
    offset: Optional[str] = Query(None, description="Records to skip"),
    count: Optional[str] = Query(None, description="Set to 'true' to include total_count")
):
    return await handle_filtered_data(request, device_id, from_date, to_date, limit, offset, count)

@router.get("/stats", response_class=PrettyJSONResponse)
async def statistics(request: Request):
    return await handle_stats(request)

@router.get("/health", response_class=PrettyJSONResponse)
async def health(request: Request):
    return await handle_health(request)

@router.get("/config", response_class=PrettyJSONResponse)
async def public_config(request: Request):
    return await handle_config(request)
