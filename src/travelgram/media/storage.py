"""MinIO/S3 binary store for uploaded media files."""

import asyncio
import logging
import os
import secrets
from typing import BinaryIO, Iterator, Optional
from urllib.parse import quote

import urllib3
from minio import Minio
from minio.error import S3Error

from ..config import Settings
from ..exceptions import DependencyUnavailable, NotFoundError, StorageError
from ..models.media import StoredObject

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("NoSuchKey", "NoSuchObject")


def generate_stored_name(suggested_name: str) -> str:
    """Random 16-byte hex name keeping the original extension."""
    ext = os.path.splitext(suggested_name or "")[1].lower()
    return secrets.token_hex(16) + ext


class ObjectStream:
    """Chunks of an open MinIO response.

    The pooled connection goes back to urllib3 on ``close()``, which runs
    after full iteration and must also be called when the consumer never
    starts reading.
    """

    def __init__(self, response, chunk_size: int):
        self._response = response
        self._chunk_size = chunk_size
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            yield from self._response.stream(self._chunk_size)
        finally:
            self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._response.close()
        self._response.release_conn()


class BinaryStore:
    """Binary store client.

    Objects live under ``uploads/<stored_name>``; the full key is the
    object id. The client is created by ``connect()`` in the app lifespan
    and every transfer fails fast with ``DependencyUnavailable`` before that.
    """

    prefix = "uploads"
    chunk_size = 64 * 1024

    def __init__(self, settings: Settings, client: Optional[Minio] = None):
        self.settings = settings
        self.bucket = settings.minio_bucket
        self._client = client

    def connect(self) -> None:
        """Connect to MinIO and ensure the bucket exists."""
        timeout = self.settings.storage_timeout_seconds
        http_client = urllib3.PoolManager(
            timeout=urllib3.Timeout(connect=timeout, read=timeout),
            retries=urllib3.Retry(total=0),
            maxsize=10,
        )
        client = Minio(
            self.settings.minio_endpoint,
            access_key=self.settings.minio_access_key,
            secret_key=self.settings.minio_secret_key,
            secure=self.settings.minio_secure,
            http_client=http_client,
        )

        # Ensure bucket exists
        if not client.bucket_exists(self.bucket):
            client.make_bucket(self.bucket)
            logger.info(f"Created MinIO bucket: {self.bucket}")

        self._client = client
        logger.info(f"MinIO connected: {self.settings.minio_endpoint}")

    def disconnect(self) -> None:
        self._client = None

    def is_ready(self) -> bool:
        return self._client is not None

    def _require_client(self) -> Minio:
        if self._client is None:
            raise DependencyUnavailable("Binary store connection is not ready")
        return self._client

    def object_key(self, stored_name: str) -> str:
        return f"{self.prefix}/{stored_name}"

    async def put(
        self,
        stream: BinaryIO,
        length: int,
        suggested_name: str,
        content_type: str = "application/octet-stream",
        metadata: Optional[dict] = None,
    ) -> StoredObject:
        """Stream ``length`` bytes into a new object under a generated name."""
        client = self._require_client()

        stored_name = generate_stored_name(suggested_name)
        object_id = self.object_key(stored_name)
        # S3 user metadata travels in headers and must be ASCII
        headers = {k: quote(str(v)) for k, v in (metadata or {}).items()}
        headers["original-name"] = quote(suggested_name or "")

        try:
            await asyncio.to_thread(
                client.put_object,
                bucket_name=self.bucket,
                object_name=object_id,
                data=stream,
                length=length,
                content_type=content_type,
                metadata=headers,
            )
        except (S3Error, urllib3.exceptions.HTTPError) as e:
            logger.error(f"Binary store write failed for {stored_name}: {e}")
            raise StorageError(f"Binary store upload failed: {e}") from e

        logger.info(f"Stored {length} bytes as {object_id}")
        return StoredObject(object_id=object_id, stored_name=stored_name)

    async def open_read_stream(self, stored_name: str) -> ObjectStream:
        """Open an object for streaming. Raises NotFoundError if absent."""
        client = self._require_client()

        try:
            response = await asyncio.to_thread(
                client.get_object, self.bucket, self.object_key(stored_name)
            )
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                raise NotFoundError("File not found in binary store") from e
            raise StorageError(f"Binary store read failed: {e}") from e
        except urllib3.exceptions.HTTPError as e:
            raise StorageError(f"Binary store read failed: {e}") from e

        return ObjectStream(response, self.chunk_size)

    async def read_bytes(self, stored_name: str) -> bytes:
        """Read a whole object into memory."""
        stream = await self.open_read_stream(stored_name)
        try:
            return await asyncio.to_thread(b"".join, stream)
        except urllib3.exceptions.HTTPError as e:
            raise StorageError(f"Binary store read failed: {e}") from e
        finally:
            stream.close()

    async def delete(self, object_id: str) -> None:
        """Remove an object. A missing object is not an error."""
        client = self._require_client()

        try:
            await asyncio.to_thread(client.remove_object, self.bucket, object_id)
        except S3Error as e:
            if e.code in MISSING_OBJECT_CODES:
                return
            raise StorageError(f"Binary store delete failed: {e}") from e
        except urllib3.exceptions.HTTPError as e:
            raise StorageError(f"Binary store delete failed: {e}") from e
