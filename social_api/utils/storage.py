import logging

from fastapi import UploadFile
from supabase import AsyncClient

from social_api.core.errors import PersistenceFailure


logger = logging.getLogger(__name__)


async def upload_public_file(
    supabase: AsyncClient, bucket: str, file_name: str, upload: UploadFile
) -> str:
    """Upload ``upload`` to ``bucket`` under ``file_name`` and return its public URL."""
    content = await upload.read()
    content_type = upload.content_type or "application/octet-stream"

    bucket_api = supabase.storage.from_(bucket)

    try:
        await bucket_api.upload(
            path=file_name,
            file=content,
            file_options={"content-type": content_type},
        )
    except Exception as error:
        logger.error(f"storage_upload_failed bucket={bucket} file={file_name} error={error}")
        raise PersistenceFailure("Failed to upload image")

    public_url = await bucket_api.get_public_url(file_name)
    logger.info(f"storage_upload_success bucket={bucket} file={file_name}")

    return public_url
