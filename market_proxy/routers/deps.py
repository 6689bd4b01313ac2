"""路由依赖：从 app.state 取出生命周期内构造的服务实例"""

from fastapi import HTTPException, Request, status

from market_proxy.assets import Asset
from market_proxy.services.market_service import MarketDataService
from market_proxy.services.technical_service import TechnicalService


def get_market_service(request: Request) -> MarketDataService:
    return request.app.state.market_service


def get_technical_service(request: Request) -> TechnicalService:
    return request.app.state.technical_service


def resolve_asset(asset_id: str, service: MarketDataService) -> Asset:
    asset = service.registry.get(asset_id)
    if asset is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"未知资产: {asset_id}",
        )
    return asset
