from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

import httpx

from admin_chat.config import settings
from admin_chat.core.dependencies import get_http_client
from admin_chat.core.exceptions import BadRequestException
from admin_chat.core.security import SessionUser, get_current_session
from admin_chat.schemas.file import UploadResponse
from admin_chat.utils.file_validator import FileValidator

logger = logging.getLogger(__name__)

router = APIRouter()


async def validate_upload(file: UploadFile) -> Dict[str, Any]:
    """Read the upload and check name, size and sniffed MIME type."""
    if not file.filename:
        raise BadRequestException("No file provided")
    if not FileValidator.is_safe_filename(file.filename):
        raise BadRequestException("Filename contains unsafe characters or paths")

    content = await file.read()
    if not content:
        raise BadRequestException("Empty file uploaded")

    max_size = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    if len(content) > max_size:
        raise BadRequestException(f"File size exceeds {settings.MAX_FILE_SIZE_MB}MB limit")

    mime_type = FileValidator.sniff_mime_type(content)
    if not FileValidator.is_allowed_mime_type(mime_type):
        # some formats sniff generically; trust the declared type if it is allowed
        declared = file.content_type or FileValidator.guess_from_name(file.filename)
        if not (mime_type == "application/octet-stream" and FileValidator.is_allowed_mime_type(declared)):
            raise BadRequestException(f"Unsupported file MIME type: {mime_type}")
        mime_type = declared

    return {"content": content, "mime_type": mime_type, "file_size": len(content)}


def upload_target(category_id: Optional[str], conversation_id: Optional[str]):
    if category_id:
        return f"{settings.ADMIN_SERVICE_URL}/categories/{category_id}/upload-image", "image"
    return f"{settings.CHAT_SERVICE_URL}/chat/conversations/{conversation_id}/files/upload", "file"


@router.post("/upload")
async def upload_media(
    file: UploadFile = File(...),
    category_id: Optional[str] = Form(None, alias="categoryId"),
    conversation_id: Optional[str] = Form(None, alias="conversationId"),
    session: SessionUser = Depends(get_current_session),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Upload a category image or chat attachment through the owning backend."""
    if not category_id and not conversation_id:
        raise BadRequestException("Category ID or conversation ID required")

    validated = await validate_upload(file)
    upload_url, field_name = upload_target(category_id, conversation_id)
    files = {field_name: (file.filename, validated["content"], validated["mime_type"])}
    data = {"conversationId": conversation_id} if conversation_id and not category_id else None

    try:
        response = await client.post(
            upload_url,
            files=files,
            data=data,
            headers={"Authorization": f"Bearer {session.access_token}"},
        )
    except httpx.HTTPError as e:
        logger.error(f"Media upload to {upload_url} failed: {e}", exc_info=True)
        return JSONResponse(
            {"error": "Internal server error", "details": str(e)},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    try:
        result = response.json()
    except ValueError:
        result = {}
    if not isinstance(result, dict):
        result = {}
    if "success" in result and isinstance(result.get("data"), dict):
        result = result["data"]

    if not response.is_success:
        return JSONResponse(
            {
                "error": result.get("message") or "Upload failed",
                "details": result.get("details") or "Failed to upload to backend service",
            },
            status_code=response.status_code,
        )

    if not result.get("url"):
        return JSONResponse(
            {"error": "Upload failed", "details": "Backend response did not include a file url"},
            status_code=status.HTTP_502_BAD_GATEWAY,
        )

    logger.info(f"Uploaded {file.filename} ({validated['file_size']} bytes) for user {session.id}")
    uploaded = UploadResponse(
        url=result["url"],
        cdn_url=result.get("cdnUrl"),
        key=result.get("key"),
        file_name=file.filename,
        file_size=validated["file_size"],
        mime_type=validated["mime_type"],
    )
    return uploaded.model_dump(by_alias=True, exclude_none=True)
