from __future__ import annotations

import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from urllib.parse import quote
from uuid import uuid4

import requests

from app.core.settings import settings
from app.models.media_asset import FileType

logger = logging.getLogger(__name__)


MIME_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}


class StorageError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AttachmentRejected(ValueError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class AttachmentUpload:
    filename: str
    content_type: str
    data: bytes


def normalize_content_type(content_type: str | None, filename: str | None = None) -> str:
    ct = str(content_type or "").split(";", 1)[0].strip().lower()
    if not ct or ct == "application/octet-stream":
        guessed, _ = mimetypes.guess_type(filename or "")
        ct = (guessed or ct or "").lower()
    return ct


def file_type_for(content_type: str) -> FileType | None:
    ct = normalize_content_type(content_type)
    if ct == "application/pdf":
        return FileType.PDF
    if ct.startswith("image/"):
        return FileType.IMAGE
    return None


def validate_attachment(
    upload: AttachmentUpload,
    *,
    max_bytes: int | None = None,
    allowed_mime_types: list[str] | None = None,
) -> FileType:
    max_bytes = settings.storage_max_file_bytes if max_bytes is None else max_bytes
    allowed = settings.storage_allowed_mime_types if allowed_mime_types is None else allowed_mime_types

    if not upload.data:
        raise AttachmentRejected(f"{upload.filename or 'file'} is empty")
    if len(upload.data) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise AttachmentRejected(f"{upload.filename or 'file'} exceeds the {limit_mb:g}MB limit", status_code=413)
    ct = normalize_content_type(upload.content_type, upload.filename)
    file_type = file_type_for(ct)
    if ct not in allowed or file_type is None:
        raise AttachmentRejected(f"Unsupported file type: {ct or 'unknown'}", status_code=415)
    return file_type


def build_storage_path(uploader_id: str, ticket_id: str, filename: str, content_type: str) -> str:
    """Object key for an attachment.

    The first path segment is always the uploader id; object access rules key
    off that folder.
    """
    ct = normalize_content_type(content_type, filename)
    ext = MIME_EXTENSIONS.get(ct)
    if ext is None:
        _root, raw_ext = posixpath.splitext(filename or "")
        ext = raw_ext.lstrip(".").lower() or "bin"
    return f"{uploader_id}/{ticket_id}/{uuid4().hex}.{ext}"


class SupabaseStorageClient:
    def __init__(self, supabase_url: str, service_role_key: str, bucket: str, *, timeout_s: float = 30) -> None:
        self._base = supabase_url.rstrip("/")
        self._key = service_role_key
        self.bucket = bucket
        self._timeout_s = timeout_s

    def _headers(self) -> dict[str, str]:
        return {"apikey": self._key, "authorization": f"Bearer {self._key}"}

    def _object_url(self, kind: str, path: str) -> str:
        return f"{self._base}/storage/v1/object/{kind}{self.bucket}/{quote(path)}"

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        try:
            resp = requests.post(
                self._object_url("", path),
                data=data,
                headers={**self._headers(), "content-type": content_type, "x-upsert": "false"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise StorageError(f"Storage unreachable: {exc}") from exc
        if resp.status_code >= 400:
            logger.error("storage.upload.failed path=%s status=%s", path, resp.status_code)
            raise StorageError(f"Storage error ({resp.status_code})", resp.status_code)
        logger.info("storage.upload.ok path=%s bytes=%s", path, len(data))
        return path

    def remove(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            resp = requests.delete(
                f"{self._base}/storage/v1/object/{self.bucket}",
                json={"prefixes": list(paths)},
                headers={**self._headers(), "content-type": "application/json"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise StorageError(f"Storage unreachable: {exc}") from exc
        if resp.status_code >= 400:
            logger.error("storage.remove.failed count=%s status=%s", len(paths), resp.status_code)
            raise StorageError(f"Storage error ({resp.status_code})", resp.status_code)
        logger.info("storage.remove.ok count=%s", len(paths))

    def create_signed_url(self, path: str, expires_in: int) -> str:
        try:
            resp = requests.post(
                self._object_url("sign/", path),
                json={"expiresIn": int(expires_in)},
                headers={**self._headers(), "content-type": "application/json"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as exc:
            raise StorageError(f"Storage unreachable: {exc}") from exc
        if resp.status_code >= 400:
            raise StorageError(f"Storage error ({resp.status_code})", resp.status_code)
        body = resp.json() or {}
        signed = str(body.get("signedURL") or body.get("signedUrl") or "").strip()
        if not signed:
            raise StorageError("Storage did not return a signed URL", resp.status_code)
        if signed.startswith("http"):
            return signed
        return f"{self._base}/storage/v1{signed}"


def get_storage() -> SupabaseStorageClient:
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise StorageError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY are not configured", 500)
    return SupabaseStorageClient(settings.supabase_url, settings.supabase_service_role_key, settings.storage_bucket)
