"""FastAPI dependencies for progress tracking."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .ledger import ProgressLedger


async def get_progress_ledger(request: Request) -> ProgressLedger:
    """Get progress ledger from app state."""
    app_state = request.app.state
    if not hasattr(app_state, "progress_ledger") or not app_state.progress_ledger:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return app_state.progress_ledger


ProgressLedgerDep = Annotated[ProgressLedger, Depends(get_progress_ledger)]
