from pydantic import BaseModel, Field
from typing import List, Optional

from ..models.banner import Banner


class BannerListResponse(BaseModel):
    success: bool = True
    data: List[Banner] = []
    total: int = 0


class BannerUpdate(BaseModel):
    title: Optional[str] = None
    subtitle: Optional[str] = None
    image_url: Optional[str] = Field(None, serialization_alias="imageUrl")
    link: Optional[str] = None
    order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = Field(None, serialization_alias="isActive")


class BannerOrderUpdate(BaseModel):
    banner_ids: List[str] = Field(..., min_length=1, serialization_alias="bannerIds")
