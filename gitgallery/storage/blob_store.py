"""
GitGallery Repository
Introductory remarks: This module is part of the GitGallery codebase.

Byte-blob storage adapters that gallery stores are built on.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .errors import StorageUnavailableError, ValidationError

_LOGGER = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
_ACCESS_DENIED_CODES = {"403", "AccessDenied", "Forbidden"}


def _looks_like_transient_cloud_failure(exc: Exception) -> bool:
    """
    _looks_like_transient_cloud_failure: Function description.
    :param exc:
    :returns:
    """

    code = _error_code(exc)
    if code in {
        "SlowDown",
        "Throttling",
        "ThrottlingException",
        "RequestTimeout",
        "RequestTimeoutException",
        "ServiceUnavailable",
        "InternalError",
        "503",
    }:
        return True
    name = exc.__class__.__name__
    if name in {
        "EndpointConnectionError",
        "ConnectTimeoutError",
        "ReadTimeoutError",
        "ConnectionClosedError",
    }:
        return True
    message = str(exc).lower()
    return any(
        token in message
        for token in (
            "timed out",
            "timeout",
            "temporarily unavailable",
            "service unavailable",
            "connection reset",
            "connection aborted",
            "connection refused",
            "endpoint connection error",
        )
    )


def _error_code(exc: Exception) -> Optional[str]:
    """
    _error_code: Function description.
    :param exc:
    :returns:
    """

    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None
    error = response.get("Error")
    if not isinstance(error, dict):
        return None
    code = error.get("Code")
    if not isinstance(code, str) or not code:
        return None
    return code


def _is_not_found(exc: Exception) -> bool:
    return _error_code(exc) in _NOT_FOUND_CODES


def _is_access_denied(exc: Exception) -> bool:
    return _error_code(exc) in _ACCESS_DENIED_CODES


class BlobStore(Protocol):
    """Minimal key/bytes capability every gallery backend depends on."""

    def read(self, key: str) -> Optional[bytes]:
        """Return the stored bytes or ``None`` when the key is absent."""

    def write(self, key: str, data: bytes) -> None:
        """Create or replace the blob stored under ``key``."""

    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether it existed."""

    def list_keys(self, prefix: str = "") -> List[str]:
        """Return every stored key starting with ``prefix``."""


class InMemoryBlobStore:
    """Dictionary-backed blob store used for tests and local runs."""

    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.calls: List[tuple[str, str]] = []

    def read(self, key: str) -> Optional[bytes]:
        self.calls.append(("read", key))
        return self.blobs.get(key)

    def write(self, key: str, data: bytes) -> None:
        self.calls.append(("write", key))
        self.blobs[key] = bytes(data)

    def delete(self, key: str) -> bool:
        self.calls.append(("delete", key))
        return self.blobs.pop(key, None) is not None

    def list_keys(self, prefix: str = "") -> List[str]:
        self.calls.append(("list", prefix))
        return sorted(key for key in self.blobs if key.startswith(prefix))


class LocalBlobStore:
    """Persist blobs as files below a directory (single-process use)."""

    _TMP_SUFFIX = ".tmp"

    def __init__(self, base_dir: Path) -> None:
        """
        __init__: Function description.
        :param base_dir:
        :returns:
        """

        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _path(self, key: str) -> Path:
        """
        _path: Function description.
        :param key:
        :returns:
        """

        parts = [part for part in key.split("/") if part]
        if not parts or any(part in {".", ".."} for part in parts):
            raise ValidationError(f"Invalid blob key '{key}'")
        return self._base_dir.joinpath(*parts)

    def read(self, key: str) -> Optional[bytes]:
        """
        read: Function description.
        :param key:
        :returns:
        """

        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailableError(
                f"Failed to read blob '{key}'"
            ) from exc

    def write(self, key: str, data: bytes) -> None:
        """
        write: Function description.
        :param key:
        :param data:
        :returns:
        """

        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=self._TMP_SUFFIX,
            )
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageUnavailableError(
                f"Failed to write blob '{key}'"
            ) from exc

    def delete(self, key: str) -> bool:
        """
        delete: Function description.
        :param key:
        :returns:
        """

        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageUnavailableError(
                f"Failed to delete blob '{key}'"
            ) from exc
        return True

    def list_keys(self, prefix: str = "") -> List[str]:
        """
        list_keys: Function description.
        :param prefix:
        :returns:
        """

        if not self._base_dir.exists():
            return []
        keys: list[str] = []
        try:
            for path in self._base_dir.rglob("*"):
                if not path.is_file() or path.name.endswith(self._TMP_SUFFIX):
                    continue
                key = path.relative_to(self._base_dir).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        except OSError as exc:
            raise StorageUnavailableError(
                f"Failed to list blobs under '{prefix}'"
            ) from exc
        return sorted(keys)


class S3BlobStore:
    """Store blobs as objects in an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        *,
        prefix: str = "",
        client: Any | None = None,
    ) -> None:
        """
        __init__: Function description.
        :param bucket:
        :param prefix:
        :param client:
        :returns:
        """

        if not bucket:
            raise ValidationError("bucket name must be provided")
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        if client is None:
            client = _build_s3_client()
        self._s3 = client

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def prefix(self) -> str:
        return self._prefix

    def _object_key(self, key: str) -> str:
        """
        _object_key: Function description.
        :param key:
        :returns:
        """

        return f"{self._prefix}/{key}" if self._prefix else key

    def read(self, key: str) -> Optional[bytes]:
        """
        read: Function description.
        :param key:
        :returns:
        """

        object_key = self._object_key(key)
        try:
            response = self._s3.get_object(
                Bucket=self._bucket, Key=object_key
            )
            return response["Body"].read()
        except Exception as exc:  # noqa: BLE001
            # Buckets without ListBucket permission answer 403 for
            # missing keys.
            if _is_not_found(exc) or _is_access_denied(exc):
                return None
            raise _unavailable("read", object_key, exc) from exc

    def write(self, key: str, data: bytes) -> None:
        """
        write: Function description.
        :param key:
        :param data:
        :returns:
        """

        object_key = self._object_key(key)
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=object_key,
                Body=data,
                ContentType="application/json",
            )
        except Exception as exc:  # noqa: BLE001
            raise _unavailable("write", object_key, exc) from exc

    def delete(self, key: str) -> bool:
        """
        delete: Function description.
        :param key:
        :returns:
        """

        object_key = self._object_key(key)
        try:
            self._s3.head_object(Bucket=self._bucket, Key=object_key)
        except Exception as exc:  # noqa: BLE001
            # HEAD on a missing key answers 403 without ListBucket.
            if _is_not_found(exc) or _is_access_denied(exc):
                return False
            raise _unavailable("probe", object_key, exc) from exc
        try:
            self._s3.delete_object(Bucket=self._bucket, Key=object_key)
        except Exception as exc:  # noqa: BLE001
            raise _unavailable("delete", object_key, exc) from exc
        return True

    def list_keys(self, prefix: str = "") -> List[str]:
        """
        list_keys: Function description.
        :param prefix:
        :returns:
        """

        strip = f"{self._prefix}/" if self._prefix else ""
        full_prefix = f"{strip}{prefix}"
        keys: list[str] = []
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(
                Bucket=self._bucket, Prefix=full_prefix
            ):
                for obj in page.get("Contents", []):
                    object_key = obj["Key"]
                    if strip and object_key.startswith(strip):
                        object_key = object_key[len(strip):]
                    keys.append(object_key)
        except Exception as exc:  # noqa: BLE001
            raise _unavailable("list", full_prefix, exc) from exc
        return sorted(keys)


def _unavailable(
    action: str, object_key: str, exc: Exception
) -> StorageUnavailableError:
    """
    _unavailable: Function description.
    :param action:
    :param object_key:
    :param exc:
    :returns:
    """

    if _looks_like_transient_cloud_failure(exc):
        _LOGGER.warning(
            "S3 temporarily unavailable during %s of %s: %s",
            action,
            object_key,
            exc,
        )
        return StorageUnavailableError(
            f"Storage temporarily unavailable; failed to {action} "
            f"'{object_key}'"
        )
    _LOGGER.error("S3 %s failed for %s: %s", action, object_key, exc)
    return StorageUnavailableError(f"Failed to {action} '{object_key}'")


def _build_s3_client() -> Any:
    """
    _build_s3_client: Function description.
    :param:
    :returns:
    """

    try:
        import boto3 as _boto3
        from botocore.config import Config
    except ImportError as exc:  # pragma: no cover
        raise StorageUnavailableError(
            "boto3 is required for S3 gallery storage"
        ) from exc

    region = (
        os.environ.get("GALLERY_STORAGE_REGION")
        or os.environ.get("AWS_REGION")
        or os.environ.get("AWS_DEFAULT_REGION")
    )
    client_kwargs: Dict[str, Any] = {
        "config": Config(retries={"max_attempts": 5, "mode": "standard"}),
    }
    if region:
        client_kwargs["region_name"] = region
    return _boto3.client("s3", **client_kwargs)
