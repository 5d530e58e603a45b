import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from arena.api.endpoints import brackets as bracket_endpoints
from arena.api.endpoints import disputes as dispute_endpoints
from arena.api.endpoints import events as event_endpoints
from arena.api.endpoints import matches as match_endpoints
from arena.api.endpoints import payouts as payout_endpoints
from arena.api.endpoints import tournaments as tournament_endpoints
from arena.core.config import settings
from arena.core.errors import ArenaError, IntegrityError
from arena.core.logging_config import configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/arena"

app = FastAPI(title="Arena Bracket Engine")

@app.exception_handler(ArenaError)
async def arena_error_handler(request: Request, exc: ArenaError):
    if isinstance(exc, IntegrityError):
        logger.critical("Bracket integrity violation on %s %s: %s %s",
                        request.method, request.url.path, exc.code, exc.details)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# Include routers
app.include_router(tournament_endpoints.router, prefix=f"{API_PREFIX}/tournaments", tags=["Tournaments"])
app.include_router(bracket_endpoints.router, prefix=f"{API_PREFIX}/brackets", tags=["Brackets"])
app.include_router(match_endpoints.router, prefix=f"{API_PREFIX}/matches", tags=["Matches"])
app.include_router(dispute_endpoints.router, prefix=f"{API_PREFIX}/disputes", tags=["Disputes"])
app.include_router(payout_endpoints.router, prefix=f"{API_PREFIX}/payouts", tags=["Payouts"])
app.include_router(event_endpoints.router, prefix=f"{API_PREFIX}/events", tags=["Events"])

@app.get("/")
async def root():
    return {"message": "Arena Bracket Engine API"}

if __name__ == "__main__":
    uvicorn.run("arena.main:app", host="127.0.0.1", port=8000, reload=True)
