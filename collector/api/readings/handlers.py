import datetime
from typing import Optional

import orjson
from fastapi import Request

from collector.core.config import API_DEFAULT_LIMIT, API_MAX_LIMIT, ACTIVE_DEVICE_WINDOW_HOURS, get_public_config
from collector.database.errors import ValidationError
from collector.responses import PrettyJSONResponse
from ..shared.pagination import parse_pagination, validate_time_bound
from ..shared.url_helpers import build_base_url, create_device_links, create_pagination_links, parse_flag
from .validation import validate_reading_upload, clean_device_id

def _now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()

def _store(request: Request):
    return request.app.state.store

async def handle_upload(request: Request):
    raw = await request.body()
    if len(raw) == 0:
        raise ValidationError("Empty request body")

    try:
        body = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON body: {e}") from e

    store = _store(request)
    device_id, device_name, value = validate_reading_upload(body, store.max_value_length)
    reading_id = await store.insert(device_id, device_name, value)

    return PrettyJSONResponse(status_code=201, content={
        "success": True,
        "message": "Data uploaded successfully",
        "id": reading_id,
        "timestamp": _now_iso()
    })

async def handle_devices(request: Request):
    base_url = build_base_url(request)
    devices = await _store(request).latest_per_device()

    return {
        "success": True,
        "count": len(devices),
        "data": [
            {**reading.to_dict(), "links": create_device_links(base_url, reading.device_id)}
            for reading in devices
        ],
        "timestamp": _now_iso()
    }

async def handle_device_history(request: Request, device_id: str, limit: Optional[str],
                                offset: Optional[str], count: Optional[str]):
    device_id = clean_device_id(device_id)
    pagination = parse_pagination(limit, offset, API_DEFAULT_LIMIT, API_MAX_LIMIT)
    store = _store(request)

    history = await store.history(device_id, pagination.limit, pagination.offset)
    has_more = len(history) == pagination.limit

    response = {
        "success": True,
        "device_id": device_id,
        "count": len(history),
        "data": [reading.to_dict() for reading in history],
        "pagination": {
            "limit": pagination.limit,
            "offset": pagination.offset,
            "has_more": has_more
        },
        "links": create_pagination_links(
            build_base_url(request), request.url.path, {}, pagination.limit, pagination.offset, has_more
        ),
        "timestamp": _now_iso()
    }

    if parse_flag(count):
        response["total_count"] = await store.count(device_id)

    return response

async def handle_filtered_data(request: Request, device_id: Optional[str], from_date: Optional[str],
                               to_date: Optional[str], limit: Optional[str], offset: Optional[str],
                               count: Optional[str]):
    pagination = parse_pagination(limit, offset, API_DEFAULT_LIMIT, API_MAX_LIMIT)
    from_time = validate_time_bound(from_date, "from_date")
    to_time = validate_time_bound(to_date, "to_date")
    device_id = device_id.strip() if device_id and device_id.strip() else None
    store = _store(request)

    data = await store.filtered(
        device_id=device_id, from_time=from_time, to_time=to_time,
        limit=pagination.limit, offset=pagination.offset
    )
    has_more = len(data) == pagination.limit
    filters = {
        "device_id": device_id,
        "from_date": from_date or None,
        "to_date": to_date or None
    }

    response = {
        "success": True,
        "count": len(data),
        "data": [reading.to_dict() for reading in data],
        "filters": filters,
        "pagination": {
            "limit": pagination.limit,
            "offset": pagination.offset,
            "has_more": has_more
        },
        "links": create_pagination_links(
            build_base_url(request), request.url.path, filters, pagination.limit, pagination.offset, has_more
        ),
        "timestamp": _now_iso()
    }

    if parse_flag(count):
        response["total_count"] = await store.count(device_id, from_time, to_time)

    return response

async def handle_stats(request: Request):
    statistics = await _store(request).stats(datetime.timedelta(hours=ACTIVE_DEVICE_WINDOW_HOURS))
    return {
        "success": True,
        "statistics": statistics,
        "timestamp": _now_iso()
    }

async def handle_health(request: Request):
    health = await _store(request).health_probe()

    if health["status"] != "healthy":
        return PrettyJSONResponse(status_code=503, content={
            "success": False,
            "database": health
        })

    retention = getattr(request.app.state, "retention", None)
    pool = getattr(request.app.state, "pool", None)
    return {
        "success": True,
        "database": health,
        "pool": pool.get_stats() if pool is not None else None,
        "retention": retention.get_status() if retention is not None else {"enabled": False}
    }

async def handle_config(request: Request):
    return {
        "success": True,
        "config": get_public_config()
    }
