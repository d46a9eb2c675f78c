"""
Supabase Storage client for uploaded audio and cover art.
"""

import logging
import os
from urllib.parse import quote

import httpx

from moodstream.core.exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)

SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "Tracks")


class SupabaseStorage:
    """Object store backed by a Supabase Storage bucket."""

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        service_key: str = SUPABASE_SERVICE_KEY,
        timeout: float = 60.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(key)}"

    async def put_object(
        self, bucket: str, key: str, data: bytes, content_type: str
    ) -> str:
        """
        Upload an object without overwriting an existing one.

        Returns:
            The object's public URL

        Raises:
            UpstreamUnavailable: If the upload does not succeed
        """
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }
        url = f"{self.base_url}/storage/v1/object/{bucket}/{quote(key)}"

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    url, content=data, headers=headers, timeout=self.timeout
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                "Object store rejected upload",
                detail=e.response.text,
                code=str(e.response.status_code),
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable("Object store unreachable", detail=str(e))
        except Exception as e:
            # e.g. a client-declared content type that cannot be sent as a header
            raise UpstreamUnavailable("Object store upload failed", detail=repr(e))

        logger.info(f"Stored {key} in bucket {bucket} ({len(data)} bytes)")
        return self.get_public_url(bucket, key)

    async def list_objects(self, bucket: str, prefix: str = "", limit: int = 100) -> list:
        """
        List objects in a bucket, newest first.

        Raises:
            UpstreamUnavailable: If the bucket cannot be listed
        """
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }
        body = {
            "prefix": prefix,
            "limit": limit,
            "offset": 0,
            "sortBy": {"column": "created_at", "order": "desc"},
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.base_url}/storage/v1/object/list/{bucket}",
                    json=body,
                    headers=headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                "Object store rejected listing",
                detail=e.response.text,
                code=str(e.response.status_code),
            )
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamUnavailable("Object store unreachable", detail=str(e))
