"""
# `khidmaty/main.py` - Application entry point

## Overview
Creates the FastAPI app, configures CORS and the error envelope, mounts the
routers and runs the housekeeping scheduler.

---

## Routers
**Public / signed-in:**
- `/auth`, `/sos`, `/notify`, `/requests`
- `/services`, `/service-slots`, `/listing`, `/sale-items`, `/drafts`, `/wizard`
- `/settings/features`, `/me/pricing`, `/plans`, `/payments`
- `/search`, `/geocode`, `/track`, `/contact`, `/uploads`
- `/proxy`, `/postman`, `/api/mock`

**Owner console (`/owner`):** every route is guarded by `get_current_owner`.

---

## Background scheduler
- **Library:** APScheduler (`AsyncIOScheduler`)
- **Jobs:** `prune_stats_once` (old `stats_daily` rows) and
  `prune_rate_windows_once` (expired `sos_rate` windows), every 12 hours.
- Disabled with `SCHEDULER_ENABLED=false`.

**Events:**
- `startup`: scheduler started, jobs registered.
- `shutdown`: scheduler stopped.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from khidmaty.config import settings
from khidmaty.core.errors import install_exception_handlers
from khidmaty.routers import (
    analytics,
    auth,
    geocode,
    listings,
    mock,
    notify,
    owner,
    payments,
    postman,
    proxy,
    search,
    services,
    sos,
    uploads,
)
from khidmaty.routers import settings as settings_router
from khidmaty.services.stats import prune_rate_windows_once, prune_stats_once

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("khidmaty")

scheduler = AsyncIOScheduler()

app = FastAPI(
    title="Khidmaty Connect API",
    description="Backend API for Khidmaty Connect, a bilingual local-services marketplace.",
    version="1.0.0",
    redirect_slashes=False,
)

allow_origins = [origin.strip() for origin in settings.allowed_origins.split(",")] if settings.allowed_origins else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=allow_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
install_exception_handlers(app)

# Public routers
app.include_router(auth.router)
app.include_router(sos.router)
app.include_router(notify.router)
app.include_router(services.router)
app.include_router(listings.router)
app.include_router(settings_router.router)
app.include_router(payments.router)
app.include_router(search.router)
app.include_router(geocode.router)
app.include_router(analytics.router)
app.include_router(uploads.router)
app.include_router(proxy.router)
app.include_router(postman.router)
app.include_router(mock.router)

# Owner console
app.include_router(owner.admin_router)
app.include_router(payments.admin_router)


@app.get("/health", tags=["Health"])
def health():
    return {"ok": True, "environment": settings.environment}


@app.on_event("startup")
async def _startup_scheduler():
    if not settings.scheduler_enabled:
        logger.info("scheduler disabled")
        return
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(prune_stats_once, "interval", hours=12, id="stats-prune", replace_existing=True)
    scheduler.add_job(prune_rate_windows_once, "interval", hours=12, id="sos-rate-prune", replace_existing=True)


@app.on_event("shutdown")
async def _shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("khidmaty.main:app", host="0.0.0.0", port=8000, reload=not settings.is_production)
