"""
Object storage API (``/storage/v1``): write-once uploads and public URLs.
"""

from urllib.parse import quote

from voicefeed.services.backend.client import BackendClient


class StorageAPI:
    """Bucket operations used by the publish pipeline, profile and player."""

    def __init__(self, client: BackendClient) -> None:
        self._client = client

    async def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Upload *data* under *key*; fails if the key already exists.

        Returns:
            The object key as stored (relative to the bucket).
        """
        await self._client.request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(key)}",
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        return key

    async def remove(self, bucket: str, keys: list[str]) -> None:
        if not keys:
            return
        await self._client.request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            json={"prefixes": keys},
        )

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self._client.base_url}/storage/v1/object/public/{bucket}/{quote(key)}"

    async def resolve_public_url(self, bucket: str, key: str) -> str:
        """Return the public URL of *key* after checking the object is reachable.

        Raises:
            BackendError: If the object is missing or the bucket is not public.
        """
        url = self.public_url(bucket, key)
        await self._client.request("HEAD", f"/storage/v1/object/public/{bucket}/{quote(key)}")
        return url
