"""
    Controller to manage assets already stored on Cloudinary
"""
import os
import re
import asyncio

import cloudinary
import logfire

from dotenv import load_dotenv

from typing import Optional

load_dotenv(override=True)

cloudinary.config(
    cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME"),
    api_key=os.getenv("CLOUDINARY_API_KEY"),
    api_secret=os.getenv("CLOUDINARY_API_SECRET"),
)

import cloudinary.uploader
import cloudinary.exceptions

# e.g. .../image/upload/v1700000000/videotube/avatars/abc123.jpg -> videotube/avatars/abc123
_PUBLIC_ID_PATTERN = re.compile(r"/upload/(?:.*?/)?v\d+/(?P<public_id>.+?)\.\w+$")


def public_id_from_url(url: str) -> Optional[str]:
    """Extract the Cloudinary public id from a delivery URL.

    Args:
        url (str): Secure or plain delivery URL of an uploaded asset.

    Returns:
        Optional[str]: The public id, or None if the URL is not a Cloudinary upload URL.
    """
    match = _PUBLIC_ID_PATTERN.search(url or "")
    return match.group("public_id") if match else None


async def destroy_cloudinary_asset(url: str, resource_type: str = "image") -> bool:
    """Delete the asset behind `url`. Failures are logged, never raised.

    Args:
        url (str): Delivery URL of the asset to delete.
        resource_type (str, optional): Cloudinary resource type. Defaults to "image".

    Returns:
        bool: True if Cloudinary confirmed the deletion.
    """
    public_id = public_id_from_url(url)
    if public_id is None:
        logfire.warning(f"Could not derive a Cloudinary public id from {url}")
        return False

    try:
        # The SDK is synchronous
        response: dict = await asyncio.to_thread(
            cloudinary.uploader.destroy, public_id, resource_type=resource_type
        )
    except cloudinary.exceptions.Error as e:
        logfire.error(f"Failed to delete Cloudinary asset {public_id}: {e}")
        return False

    deleted = response.get("result") == "ok"
    if deleted:
        logfire.info(f"Deleted Cloudinary asset {public_id}")
    else:
        logfire.warning(f"Cloudinary did not delete asset {public_id}: {response}")
    return deleted
