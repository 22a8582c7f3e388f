from typing import Optional
from urllib.parse import urlencode, quote

from fastapi import Request

def build_base_url(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"

def parse_flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() == "true"

def create_device_links(base_url: str, device_id: str) -> dict:
    return {
        "history": f"{base_url}/api/device/{quote(device_id, safe='')}/history",
        "data": f"{base_url}/api/data?{urlencode({'device_id': device_id})}"
    }

def create_pagination_links(base_url: str, path: str, params: dict, limit: int, offset: int, has_more: bool) -> dict:
    query = {k: v for k, v in params.items() if v not in (None, "")}

    links = {"self": f"{base_url}{path}?{urlencode({**query, 'limit': limit, 'offset': offset})}"}
    if has_more:
        links["next_page"] = f"{base_url}{path}?{urlencode({**query, 'limit': limit, 'offset': offset + limit})}"
    if offset > 0:
        links["prev_page"] = f"{base_url}{path}?{urlencode({**query, 'limit': limit, 'offset': max(0, offset - limit)})}"
    return links
