"""Upload proxy endpoint.

Forwards an uploaded file to Cloudinary and returns Cloudinary's response
unchanged. Uploads never touch contact submissions.
"""

import logging
from typing import IO, Any

import cloudinary.exceptions
import cloudinary.uploader
from fastapi import APIRouter, File, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


class CloudinaryUploader:
    """Media host client bound to one Cloudinary account.

    Credentials are passed per call so no global SDK state is touched.
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str) -> None:
        self.cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret

    async def upload(self, file: IO[bytes]) -> dict[str, Any]:
        """Upload a file, letting Cloudinary detect its resource type.

        Args:
            file: Binary file object positioned at the start

        Returns:
            Cloudinary's upload response

        Raises:
            cloudinary.exceptions.Error: If Cloudinary rejects the upload
        """
        return await run_in_threadpool(
            cloudinary.uploader.upload,
            file,
            resource_type="auto",
            cloud_name=self.cloud_name,
            api_key=self._api_key,
            api_secret=self._api_secret,
        )


@router.post(
    "/upload",
    summary="Upload a file to the media host",
    description="Streams the multipart `file` field to Cloudinary and returns its response verbatim.",
)
async def upload_file(request: Request, file: UploadFile | None = File(default=None)) -> JSONResponse:
    """Proxy one upload to Cloudinary.

    Args:
        request: FastAPI request object (for the configured uploader)
        file: Uploaded file

    Returns:
        JSONResponse with Cloudinary's response, or an error body
    """
    if file is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "No file uploaded."},
        )

    uploader: CloudinaryUploader = request.app.state.uploader
    try:
        result = await uploader.upload(file.file)
    except cloudinary.exceptions.Error as e:
        logger.error("Cloudinary upload failed", extra={"error": str(e), "upload_filename": file.filename})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(e)},
        )
    finally:
        await file.close()

    return JSONResponse(content=result)
