from fastapi import APIRouter, Request

from market_feed.config.markets import target_for_symbol

router = APIRouter()


@router.get('/markets/quotes/{symbol}')
async def get_stock_quote(symbol: str, request: Request, name: str | None = None, display: str | None = None):
    service = request.app.state.get_market_service()
    target = target_for_symbol(symbol)
    quote = await service.fetch_stock_quote(
        symbol,
        name or target.name,
        display or target.display,
    )
    return quote.model_dump()


@router.get('/markets/quotes')
async def get_stock_quotes(request: Request, symbols: str | None = None):
    service = request.app.state.get_market_service()
    settings = request.app.state.get_settings()
    if symbols:
        req = [s.strip() for s in symbols.split(',') if s.strip()]
    else:
        req = settings.MARKETS_SYMBOLS
    rows = await service.fetch_multiple_stocks(
        [target_for_symbol(s) for s in req],
        batch_size=settings.MARKETS_BATCH_SIZE,
        delay_ms=settings.MARKETS_BATCH_DELAY_MS,
    )
    return [row.model_dump() for row in rows]


@router.get('/markets/crypto')
async def get_crypto_quotes(request: Request):
    service = request.app.state.get_market_service()
    rows = await service.fetch_crypto()
    return [row.model_dump() for row in rows]


@router.get('/metrics/markets')
def market_metrics(request: Request):
    return request.app.state.get_market_service().metrics()
