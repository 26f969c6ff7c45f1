from typing import Any, List, Optional, Sequence, TypeVar
import logging

from admin_chat.core.exceptions import ChatClientError
from admin_chat.models.banner import Banner
from admin_chat.schemas.banner import BannerListResponse, BannerOrderUpdate, BannerUpdate
from admin_chat.services.api_client import ChatApiClient
from admin_chat.services.notifier import Notifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

BANNERS_ENDPOINT = "/admin/landing/banners"


def array_move(items: Sequence[T], old_index: int, new_index: int) -> List[T]:
    """Copy of ``items`` with the element at old_index moved to new_index."""
    result = list(items)
    result.insert(new_index, result.pop(old_index))
    return result


class BannerService:
    def __init__(self, api_client: ChatApiClient):
        self.api = api_client

    async def get_banners(self) -> List[Banner]:
        raw = await self.api.get(BANNERS_ENDPOINT)
        # the envelope is usually unwrapped to the bare list already
        if isinstance(raw, list):
            return [Banner.model_validate(item) for item in raw]
        return BannerListResponse.model_validate(raw or {}).data

    async def update_banner(self, banner_id: str, update: BannerUpdate) -> Optional[Banner]:
        payload = update.model_dump(by_alias=True, exclude_none=True)
        raw = await self.api.put(f"{BANNERS_ENDPOINT}/{banner_id}", payload)
        return Banner.model_validate(raw) if raw else None

    async def delete_banner(self, banner_id: str) -> None:
        await self.api.delete(f"{BANNERS_ENDPOINT}/{banner_id}")

    async def update_banners_order(self, banner_ids: List[str]) -> None:
        order = BannerOrderUpdate(banner_ids=banner_ids)
        await self.api.put(f"{BANNERS_ENDPOINT}/reorder", order.model_dump(by_alias=True))


class BannerBoard:
    """Promotional banner list with optimistic drag-and-drop reordering."""

    def __init__(self, service: BannerService, notifier: Optional[Notifier] = None):
        self.service = service
        self.notifier = notifier if notifier is not None else Notifier()
        self.banners: List[Banner] = []
        # last order confirmed by the server
        self._server_banners: List[Banner] = []

    async def load(self) -> List[Banner]:
        try:
            banners = await self.service.get_banners()
        except ChatClientError as e:
            logger.error(f"Failed to load banners: {e}")
            self.notifier.error("Failed to load banners")
            return self.banners
        self.banners = list(banners)
        self._server_banners = list(banners)
        return self.banners

    def _index_of(self, banner_id: str) -> int:
        for index, banner in enumerate(self.banners):
            if banner.id == banner_id:
                return index
        return -1

    async def move(self, active_id: str, over_id: Optional[str]) -> bool:
        """Apply a drop of ``active_id`` onto ``over_id`` and persist the new order."""
        if over_id is None or active_id == over_id:
            return False
        old_index = self._index_of(active_id)
        new_index = self._index_of(over_id)
        if old_index < 0 or new_index < 0:
            logger.warning(f"Ignoring move of unknown banner {active_id} -> {over_id}")
            return False

        self.banners = array_move(self.banners, old_index, new_index)
        try:
            await self.service.update_banners_order([b.id for b in self.banners])
        except ChatClientError as e:
            logger.error(f"Failed to update banner order: {e}")
            self.banners = list(self._server_banners)
            self.notifier.error(_message_of(e, "Failed to update banner order"))
            return False

        self._server_banners = list(self.banners)
        self.notifier.success("Banner order updated successfully")
        return True

    async def toggle(self, banner_id: str, active: bool) -> bool:
        try:
            updated = await self.service.update_banner(banner_id, BannerUpdate(is_active=active))
        except ChatClientError as e:
            logger.error(f"Failed to update banner {banner_id}: {e}")
            self.notifier.error(_message_of(e, "Failed to update banner"))
            return False
        index = self._index_of(banner_id)
        if index >= 0:
            self.banners[index] = updated or self.banners[index].model_copy(update={"is_active": active})
            self._server_banners = list(self.banners)
        return True

    async def delete(self, banner_id: str) -> bool:
        try:
            await self.service.delete_banner(banner_id)
        except ChatClientError as e:
            logger.error(f"Failed to delete banner {banner_id}: {e}")
            self.notifier.error(_message_of(e, "Failed to delete banner"))
            return False
        self.banners = [b for b in self.banners if b.id != banner_id]
        self._server_banners = list(self.banners)
        self.notifier.success("Banner deleted successfully")
        return True


def _message_of(error: Any, default: str) -> str:
    return getattr(error, "message", None) or default
