from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, outside every rate limit policy.

    Returns:
        dict: ``status`` plus the names of the registered rate limit policies,
            so a deploy can confirm the limiter came up configured.
    """

    return {
        "status": "ok",
        "rate_limit_policies": sorted(request.app.state.rate_limiter.policies),
    }
