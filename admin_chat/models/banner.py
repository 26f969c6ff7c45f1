from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Banner(BaseModel):
    id: str = Field(..., alias="_id")
    title: str
    subtitle: Optional[str] = None
    image_url: str = Field("", alias="imageUrl")
    link: Optional[str] = None
    order: int = Field(0, ge=0)
    is_active: bool = Field(True, alias="isActive")
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    impressions: int = 0
    click_count: int = Field(0, alias="clickCount")

    class Config:
        populate_by_name = True
