"""Internal trigger endpoint for the token refresh sweep."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .refresh import refresh_expiring_tokens
from .schemas import TokenRefreshSummary

router = APIRouter(prefix="/internal/tokens", tags=["internal"])


@router.post("/refresh", response_model=TokenRefreshSummary)
async def run_token_refresh():
    """
    Run one token refresh sweep.

    Per-connection failures are listed in ``errors`` with a 200 response;
    500 means the sweep itself could not run.
    """
    summary = await refresh_expiring_tokens()
    if not summary.success:
        return JSONResponse(status_code=500, content=summary.model_dump(mode="json"))
    return summary
