"""API routes for usage snapshots and the reset anchor.

Endpoints:
  GET    /api/health        liveness
  GET    /api/usage         current usage snapshot
  GET    /api/usage/window  active accounting window
  GET    /api/usage/plan    tier, plan name and token ceiling
  GET    /api/anchor        configured reset hour (or null)
  PUT    /api/anchor        set the reset hour
  DELETE /api/anchor        clear it (back to window inference)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from claude_battery.usage.service import UsageService, snapshot_to_dict

logger = logging.getLogger(__name__)

router = APIRouter()


class AnchorRequest(BaseModel):
    reset_hour: int = Field(ge=0, le=23)


def _service(request: Request) -> UsageService:
    return request.app.state.service


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# -- Usage -----------------------------------------------------------------------


@router.get("/usage")
def get_usage(request: Request) -> dict[str, Any]:
    """Tokens used in the current 5-hour window against the plan ceiling."""
    return snapshot_to_dict(_service(request).snapshot())


@router.get("/usage/window")
def get_window(request: Request) -> dict[str, Any]:
    window = _service(request).current_window()
    return {
        "start": window.start.isoformat(),
        "end": window.end.isoformat(),
        "mode": window.mode,
    }


@router.get("/usage/plan")
def get_plan(request: Request) -> dict[str, Any]:
    service = _service(request)
    tier = service.tier()
    return {
        "tier": tier,
        "plan_name": service.plan_name(tier),
        "limit": service.plan_limit(tier),
    }


# -- Anchor ----------------------------------------------------------------------


@router.get("/anchor")
def get_anchor(request: Request) -> dict[str, Any]:
    return {"reset_hour": _service(request).anchors.load()}


@router.put("/anchor")
def set_anchor(req: AnchorRequest, request: Request) -> dict[str, Any]:
    _service(request).anchors.save(req.reset_hour)
    return {"reset_hour": req.reset_hour}


@router.delete("/anchor")
def clear_anchor(request: Request) -> dict[str, Any]:
    _service(request).anchors.clear()
    return {"reset_hour": None}
