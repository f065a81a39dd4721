"""
    Controller to handle uploads of images and videos to Cloudinary's API
"""
import os

import cloudinary.utils
import filetype
import logfire

from enum import Enum

from fastapi import status, UploadFile

from dotenv import load_dotenv
from httpx import AsyncClient, HTTPError, ConnectTimeout, NetworkError, Limits
from datetime import datetime

from pydantic import ValidationError

from schema.file_upload import CloudinaryUploadResponse

from utils.exceptions import ApiError, Internal, InvalidInput

from typing import Dict, List, Optional, Tuple

load_dotenv(override=True)

CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
API_KEY = os.getenv("CLOUDINARY_API_KEY")
UPLOAD_FOLDER = os.getenv("CLOUDINARY_UPLOAD_FOLDER", "videotube")


class ResourceType(str, Enum):
    """Cloudinary resource types used by the platform."""
    IMAGE = "image"
    VIDEO = "video"


ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp"]
ALLOWED_VIDEO_TYPES = ["video/mp4", "video/webm", "video/quicktime", "video/x-matroska"]
MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_VIDEO_SIZE = 500 * 1024 * 1024  # 500 MB

# filetype only needs the first bytes of a file to detect its kind
FILE_SIGNATURE_SIZE = 261


async def validate_upload(
    file: UploadFile, allowed_types: List[str], max_size: int, file_category: str
) -> None:
    """
    Validate that an uploaded file is within `max_size` and matches an allowed MIME type.

    Args:
        file: The uploaded file
        allowed_types: Allowed MIME types (e.g. ['image/jpeg', 'image/png'])
        max_size: Maximum size in bytes
        file_category: Description of the file for error messages (e.g. 'avatar', 'thumbnail')

    Raises:
        InvalidInput: When the file is too large or of the wrong type

    Example:
        >>> await validate_upload(avatar, ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE, "avatar")
    """
    if file.size is not None and file.size > max_size:
        raise InvalidInput(
            f"File {file.filename} exceeds maximum allowed {file_category} size of {max_size // (1024 * 1024)} MB."
        )

    header = await file.read(FILE_SIGNATURE_SIZE)
    kind = filetype.guess(header)

    # Reset file pointer for the upload
    await file.seek(0)

    if not kind or kind.mime not in allowed_types:
        allowed_extensions = ", ".join(
            sorted(set(mime.split("/")[1].upper() for mime in allowed_types))
        )
        raise InvalidInput(
            f"Invalid {file_category} file type: {file.filename}. Allowed types are {allowed_extensions}."
        )


def to_upload_response(result: Tuple[int, Optional[Dict]], error_message: str) -> CloudinaryUploadResponse:
    """Convert an upload result tuple into a validated response, or raise.

    Args:
        result (Tuple[int, Optional[Dict]]): Status code and response JSON from `upload_file_to_cloudinary`.
        error_message (str): Message returned to the client if the upload failed.

    Raises:
        ApiError: Carrying the upload status code when the upload failed.
        Internal: When Cloudinary's response cannot be parsed.

    Returns:
        CloudinaryUploadResponse: The validated upload response.
    """
    status_code, payload = result
    if status_code != status.HTTP_200_OK or payload is None:
        raise ApiError(error_message, status_code=status_code)

    try:
        return CloudinaryUploadResponse(**payload)
    except ValidationError:
        logfire.error(f"Unexpected upload response from Cloudinary: {payload}")
        raise Internal("Failed to process uploaded files")


async def upload_file_to_cloudinary(
    file: UploadFile, resource_type: ResourceType = ResourceType.IMAGE
) -> Tuple[int, Dict | None]:
    """Uploads a file to Cloudinary and returns the upload response.

    Args:
        file (UploadFile): The image or video file to be uploaded.
        resource_type (ResourceType): Cloudinary resource type. Defaults to image.

    Returns:
        Tuple[int, dict | None]: A tuple containing the HTTP status code and the response JSON from Cloudinary if successful, or None if failed.
    """

    timestamp = str(int(datetime.now().timestamp()))

    url = f"https://api.cloudinary.com/v1_1/{CLOUD_NAME}/{resource_type.value}/upload"

    params_to_sign = {"folder": UPLOAD_FOLDER, "timestamp": timestamp}
    payload = {
        **params_to_sign,
        "api_key": API_KEY,
        "signature": cloudinary.utils.api_sign_request(
            params_to_sign,
            os.getenv("CLOUDINARY_API_SECRET"),
        ),
    }

    logfire.info(f"Uploading {resource_type.value} {file.filename} to Cloudinary")

    files = {"file": (file.filename, file.file, file.content_type)}

    try:
        # Videos can take a while to be accepted
        timeout = 300 if resource_type == ResourceType.VIDEO else 30
        connection_limits = Limits(max_keepalive_connections=20, max_connections=20)

        async with AsyncClient(timeout=timeout, limits=connection_limits) as client:
            response = await client.post(url, data=payload, files=files)
    except NetworkError as e:
        logfire.error(f"Network error occurred while uploading {file.filename} to Cloudinary: {e}")
        return status.HTTP_503_SERVICE_UNAVAILABLE, None
    except ConnectTimeout as e:
        logfire.error(f"Connection timed out while uploading {file.filename} to Cloudinary: {e}")
        return status.HTTP_504_GATEWAY_TIMEOUT, None
    except HTTPError as e:
        logfire.error(f"HTTP error occurred while uploading {file.filename} to Cloudinary: {e}")
        return status.HTTP_500_INTERNAL_SERVER_ERROR, None

    if response.status_code == status.HTTP_200_OK:
        logfire.info(f"{file.filename} uploaded successfully to Cloudinary")
        return response.status_code, response.json()

    logfire.error(f"Failed to upload {file.filename} to Cloudinary: {response.text}")
    return response.status_code, None
