from pydantic import BaseModel
from typing import Optional

from .message import CamelModel


class UploadResponse(CamelModel):
    """What /api/media/upload answers with."""
    url: str
    file_name: str
    file_size: int
    mime_type: str
    cdn_url: Optional[str] = None
    key: Optional[str] = None


class UploadProgress(BaseModel):
    loaded: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 100
        return min(100, int(self.loaded * 100 / self.total))


class FileValidation(BaseModel):
    valid: bool
    error: Optional[str] = None
