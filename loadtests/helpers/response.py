"""Response error extraction for load test observability.

Parses Stockroom API error responses into human-readable messages.
Handles two response shapes:

- Pydantic validation (422): {"detail": [{"loc": [...], "msg": "...", "type": "..."}]}
- Domain errors (403/404/409/422/503): {"error": ..., "kind": "InventoryLocked"}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a compact error message suitable for Locust failure lines."""
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if "detail" in body and isinstance(body["detail"], list):
        parts = []
        for err in body["detail"]:
            loc = ".".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", str(err))
            parts.append(f"{loc}: {msg}" if loc else msg)
        return " | ".join(parts)

    if "error" in body:
        error = body["error"]
        if isinstance(error, dict):
            error = " | ".join(f"{k}: {v}" for k, v in error.items())
        kind = body.get("kind")
        return f"{kind}: {error}" if kind else str(error)

    return str(body)[:300]


def error_kind(response: Response) -> str | None:
    try:
        return response.json().get("kind")
    except ValueError:
        return None
