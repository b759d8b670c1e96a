"""
资产目录服务
启动时一次性拉取市值排名列表，按排名升序保存（无排名的排在最后）
"""

import logging
from typing import List, Optional, Tuple

from crypto_service.errors import GatewayError
from crypto_service.models.market import Asset

logger = logging.getLogger(__name__)


def sort_by_rank(assets: List[Asset]) -> List[Asset]:
    """按排名升序；无排名排最后；同名次保持原顺序（sorted 为稳定排序）"""
    return sorted(assets, key=lambda a: (a.cmc_rank is None, a.cmc_rank or 0))


class AssetCatalog:
    """资产目录：只加载一次，不做后台刷新"""

    def __init__(self, client):
        self._client = client
        self._assets: Tuple[Asset, ...] = ()
        self.error: Optional[str] = None
        self.loaded = False

    @property
    def assets(self) -> Tuple[Asset, ...]:
        return self._assets

    def __len__(self) -> int:
        return len(self._assets)

    async def load(self) -> Tuple[Asset, ...]:
        try:
            fetched = await self._client.listings()
        except (GatewayError, ValueError) as exc:
            # ValueError 覆盖上游数据格式不合法（pydantic 校验失败）
            logger.warning(f"资产列表加载失败: {exc}")
            self.error = str(exc)
            self._assets = ()
        else:
            self._assets = tuple(sort_by_rank(list(fetched)))
            self.error = None
            logger.info(f"资产列表加载完成，共 {len(self._assets)} 个")
        finally:
            self.loaded = True
        return self._assets

    def first(self) -> Optional[Asset]:
        return self._assets[0] if self._assets else None

    def find(self, symbol: str) -> Optional[Asset]:
        wanted = (symbol or "").upper()
        for asset in self._assets:
            if asset.symbol.upper() == wanted:
                return asset
        return None
