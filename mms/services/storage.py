# mms/services/storage.py
"""Object storage behind presigned PUT uploads.

Two implementations are selected at startup from ``settings.STORAGE_BACKEND``:

- ``S3ObjectStorage`` for AWS S3 or any S3-compatible service (MinIO, R2)
- ``LocalObjectStorage`` which writes under a directory on disk; its upload
  URL points at this API's own ``PUT /storage/local/{token}`` endpoint
"""

import logging
import os
from datetime import datetime, timedelta
from pathlib import Path

import boto3
from botocore.exceptions import ClientError
from jose import jwt, JWTError

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class StorageObjectNotFound(StorageError):
    pass


class StorageObjectExists(StorageError):
    pass


class ObjectStorage:
    """Capability interface used by the document routes."""

    name = "abstract"

    def create_upload_url(self, key: str, content_type: str, expires_in: int) -> str:
        raise NotImplementedError

    def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store server-validated bytes; refuses to replace an existing object."""
        raise NotImplementedError

    def read(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class S3ObjectStorage(ObjectStorage):
    name = "s3"

    def __init__(self, bucket: str, region: str, endpoint_url: str = "", access_key: str = "", secret_key: str = ""):
        self.bucket = bucket
        self.client = boto3.client(
            "s3",
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key or None,
            aws_secret_access_key=secret_key or None,
            region_name=region,
        )
        logger.info(f"S3 storage ready (bucket={bucket}, endpoint={endpoint_url or 'aws'})")

    def create_upload_url(self, key: str, content_type: str, expires_in: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=expires_in,
            )
        except ClientError as e:
            logger.error(f"Failed to presign upload for {key}: {e}")
            raise StorageError(f"Failed to create upload URL: {e}") from e

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                IfNoneMatch="*",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("PreconditionFailed", "412"):
                raise StorageObjectExists(key) from e
            logger.error(f"Failed to write {key} to S3: {e}")
            raise StorageError(f"Failed to write object: {e}") from e

    def read(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("NoSuchKey", "404"):
                raise StorageObjectNotFound(key) from e
            logger.error(f"Failed to read {key} from S3: {e}")
            raise StorageError(f"Failed to read object: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            logger.error(f"Failed to delete {key} from S3: {e}")
            raise StorageError(f"Failed to delete object: {e}") from e


class LocalObjectStorage(ObjectStorage):
    name = "local"

    def __init__(self, root: str, public_base_url: str, secret_key: str, algorithm: str = "HS256"):
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self._secret_key = secret_key
        self._algorithm = algorithm
        os.makedirs(self.root, exist_ok=True)
        logger.info(f"Local storage ready at {self.root}")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise StorageError(f"Object key escapes storage root: {key}")
        return path

    def create_upload_url(self, key: str, content_type: str, expires_in: int) -> str:
        token = jwt.encode(
            {
                "key": key,
                "content_type": content_type,
                "purpose": "local_upload",
                "exp": datetime.utcnow() + timedelta(seconds=expires_in),
            },
            self._secret_key,
            algorithm=self._algorithm,
        )
        return f"{self.public_base_url}/storage/local/{token}"

    def resolve_upload_token(self, token: str) -> str:
        """Return the object key a signed upload token grants, or raise StorageError."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as e:
            raise StorageError(f"Invalid upload token: {e}") from e
        if payload.get("purpose") != "local_upload" or not payload.get("key"):
            raise StorageError("Invalid upload token")
        return payload["key"]

    def write(self, key: str, data: bytes) -> None:
        """Create the object at ``key``. Existing objects are never overwritten."""
        path = self._path_for(key)
        os.makedirs(path.parent, exist_ok=True)
        try:
            with open(path, "xb") as buffer:
                buffer.write(data)
        except FileExistsError as e:
            raise StorageObjectExists(key) from e

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self.write(key, data)

    def read(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise StorageObjectNotFound(key)
        with open(path, "rb") as f:
            return f.read()

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        if path.is_file():
            path.unlink()


def build_storage(settings) -> ObjectStorage:
    if settings.STORAGE_BACKEND == "s3":
        return S3ObjectStorage(
            bucket=settings.S3_BUCKET,
            region=settings.S3_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL,
            access_key=settings.S3_ACCESS_KEY,
            secret_key=settings.S3_SECRET_KEY,
        )
    return LocalObjectStorage(
        root=settings.LOCAL_STORAGE_DIR,
        public_base_url=settings.BACKEND_URL,
        secret_key=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
