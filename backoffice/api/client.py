#===========================================================================
# backoffice/api/client.py
# Low-level HTTP helpers for the back-office REST API.
# Every call goes through _request(): bearer token, JSON body, timeout and SSL
# verification from settings, and ApiError for transport failures / status >= 400.
#===========================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from backoffice.config import settings
from backoffice.variations.errors import ApiError

logger = logging.getLogger("uvicorn.error")


def _headers() -> Dict[str, str]:
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if settings.BACKOFFICE_API_TOKEN:
        headers["Authorization"] = f"Bearer {settings.BACKOFFICE_API_TOKEN}"
    return headers


def _url(path: str) -> str:
    if path.startswith("http://") or path.startswith("https://"):
        return path
    return f"{settings.BACKOFFICE_API_URL}{path if path.startswith('/') else '/' + path}"


def _decode(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


async def _request(
    method: str,
    path: str,
    *,
    json: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Any:
    """
    Issue one request and return the decoded body.
    Pass `client` to reuse a connection (tests inject one built on httpx.MockTransport).
    """
    url = _url(path)
    try:
        if client is not None:
            resp = await client.request(method, url, headers=_headers(), json=json, params=params)
        else:
            async with httpx.AsyncClient(
                timeout=settings.BACKOFFICE_API_TIMEOUT,
                verify=settings.BACKOFFICE_VERIFY_SSL,
            ) as c:
                resp = await c.request(method, url, headers=_headers(), json=json, params=params)
    except httpx.HTTPError as e:
        logger.error("[API] %s %s failed: %s", method, url, e)
        raise ApiError(str(e) or e.__class__.__name__, method=method, url=url) from e

    body = _decode(resp)
    if resp.status_code >= 400:
        logger.warning("[API] %s %s -> %s %s", method, url, resp.status_code, body)
        raise ApiError(status_code=resp.status_code, body=body, method=method, url=url)
    return body


async def api_get(path: str, params: Optional[Dict[str, Any]] = None, client: Optional[httpx.AsyncClient] = None) -> Any:
    return await _request("GET", path, params=params, client=client)


async def api_post(path: str, payload: Dict[str, Any], client: Optional[httpx.AsyncClient] = None) -> Any:
    return await _request("POST", path, json=payload, client=client)


async def api_put(path: str, payload: Dict[str, Any], client: Optional[httpx.AsyncClient] = None) -> Any:
    return await _request("PUT", path, json=payload, client=client)


async def api_delete(path: str, client: Optional[httpx.AsyncClient] = None) -> Any:
    return await _request("DELETE", path, client=client)
