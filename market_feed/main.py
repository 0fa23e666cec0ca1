from __future__ import annotations

from fastapi import FastAPI

from market_feed.api.routes import router
from market_feed.config.settings import get_settings
from market_feed.services.markets import get_market_service

app = FastAPI(title="Market Feed", version="0.1.0")
app.include_router(router, prefix="/v1")

# NOTE: lazy-loaded so app import does not read env or open a session.
app.state.get_settings = get_settings
app.state.get_market_service = get_market_service
