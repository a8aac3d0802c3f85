"""HTTP storage driver for the shop admin upload endpoints."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import httpx

from ..config import DashboardSettings
from .storage import ImageStorageDriver
from .upload_errors import (
    DeleteError,
    InvalidResponseError,
    PayloadTooLargeError,
    SessionExpiredError,
    UnsupportedMediaError,
    UploadError,
)
from .upload_models import PendingFile

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
_TOKEN_ERROR_MARKERS = ("token expired", "jwt expired", "invalid token", "token is invalid")


def _url_from_item(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in ("url", "imageUrl", "path"):
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
    return ""


def extract_upload_url(data: Any) -> str:
    """Pick the uploaded file URL out of the response shapes the backend uses."""
    if isinstance(data, str) and data:
        return data
    if isinstance(data, dict):
        inner = data.get("data")
        if data.get("success") and inner:
            url = _url_from_item(inner)
            if url:
                return url
        url = _url_from_item(data)
        if url:
            return url
    raise InvalidResponseError("Invalid upload response format. Expected URL in response.")


def extract_upload_urls(data: Any) -> list[str]:
    """Batch variant of :func:`extract_upload_url`; order follows the response."""
    items: list[Any] = []
    if isinstance(data, dict) and data.get("success") and data.get("data"):
        inner = data["data"]
        if isinstance(inner, list):
            items = inner
        elif isinstance(inner, dict):
            if isinstance(inner.get("urls"), list):
                items = inner["urls"]
            elif inner.get("url"):
                items = [inner["url"]]
    elif isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("urls"), list):
        items = data["urls"]

    if not items:
        raise InvalidResponseError(
            "Invalid upload response format. Expected array of URLs in response."
        )
    return [_url_from_item(item) for item in items]


def _error_message(data: Any, default: str) -> str:
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])
    return default


def _is_token_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _TOKEN_ERROR_MARKERS)


@dataclass(slots=True)
class HttpImageStorage(ImageStorageDriver):
    """Upload and delete product images through the admin REST API."""

    settings: DashboardSettings
    log: logging.Logger = field(default_factory=lambda: logger)

    async def upload_one(self, file: PendingFile) -> str:
        headers = self._auth_headers(UploadError)
        self._validate(file, single=True)
        response = await self._post(
            self.settings.upload_endpoint,
            error_cls=UploadError,
            headers=headers,
            files={"file": (file.filename, file.payload, file.content_type)},
        )
        data = self._parse_json(response, "upload", UploadError)
        self._raise_for_status(response, data, "Upload failed")
        url = self._absolute(extract_upload_url(data))
        self.log.info("images.storage.uploaded", extra={"file_name": file.filename, "url": url})
        return url

    async def upload_many(self, files: Sequence[PendingFile]) -> list[str]:
        if not files:
            return []
        if len(files) == 1:
            return [await self.upload_one(files[0])]

        headers = self._auth_headers(UploadError)
        for file in files:
            self._validate(file, single=False)
        response = await self._post(
            self.settings.upload_many_endpoint,
            error_cls=UploadError,
            headers=headers,
            files=[("files", (file.filename, file.payload, file.content_type)) for file in files],
        )
        data = self._parse_json(response, "upload", UploadError)
        self._raise_for_status(response, data, "Upload failed")
        urls = [self._absolute(url) if url else url for url in extract_upload_urls(data)]
        self.log.info("images.storage.uploaded_many", extra={"count": len(urls)})
        return urls

    async def delete_image(self, url: str) -> bool:
        headers = self._auth_headers(DeleteError)
        parsed = urlparse(url)
        path = parsed.path if parsed.scheme and parsed.netloc else url
        response = await self._post(
            self.settings.delete_endpoint,
            error_cls=DeleteError,
            headers=headers,
            json={"imageUrl": url, "path": path},
        )
        if response.status_code == 404:
            self.log.info("images.storage.delete_not_found", extra={"url": url})
            return True
        data = self._parse_json(response, "delete", DeleteError)
        if response.status_code == 401:
            raise DeleteError(SESSION_EXPIRED_MESSAGE)
        if not 200 <= response.status_code < 300:
            message = _error_message(data, "Delete failed")
            if _is_token_error(message):
                raise DeleteError(SESSION_EXPIRED_MESSAGE)
            raise DeleteError(message)
        if isinstance(data, dict) and "success" in data:
            return data["success"] is True
        return True

    def _auth_headers(self, error_cls: type[Exception]) -> dict[str, str]:
        token = self.settings.api_token
        if not token:
            raise error_cls("Authentication required")
        return {"Authorization": f"Bearer {token}"}

    def _validate(self, file: PendingFile, *, single: bool) -> None:
        if file.content_type not in self.settings.allowed_content_types:
            if single:
                raise UnsupportedMediaError(
                    "Invalid file type. Only image files are allowed (JPEG, PNG, GIF, WebP)."
                )
            raise UnsupportedMediaError(
                f"Invalid file type: {file.filename}. "
                "Only image files are allowed (JPEG, PNG, GIF, WebP)."
            )
        if file.size > self.settings.max_upload_bytes:
            limit_mb = self.settings.max_upload_bytes // (1024 * 1024)
            suffix = "" if single else f": {file.filename}"
            raise PayloadTooLargeError(f"File size exceeds maximum limit of {limit_mb}MB{suffix}.")

    async def _post(
        self, endpoint: str, *, error_cls: type[Exception], **kwargs: Any
    ) -> httpx.Response:
        url = f"{self.settings.api_base_url.rstrip('/')}{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=self.settings.request_timeout_seconds) as client:
                return await client.post(url, **kwargs)
        except httpx.HTTPError as exc:
            self.log.error("images.storage.unreachable", extra={"url": url, "error": str(exc)})
            raise error_cls(
                "Unable to connect to the API server. "
                "Please ensure the API server allows requests from the current origin."
            ) from exc

    def _parse_json(
        self, response: httpx.Response, action: str, error_cls: type[Exception]
    ) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            excerpt = (response.text or "")[:200]
            raise error_cls(
                f"Failed to parse {action} response. "
                f"Status: {response.status_code}. Response: {excerpt}"
            ) from exc

    def _raise_for_status(self, response: httpx.Response, data: Any, default: str) -> None:
        if 200 <= response.status_code < 300:
            return
        message = _error_message(data, default)
        if response.status_code == 401 or _is_token_error(message):
            self.log.warning("images.storage.session_expired")
            raise SessionExpiredError(SESSION_EXPIRED_MESSAGE)
        raise UploadError(message)

    def _absolute(self, url: str) -> str:
        if url.startswith("/") and not url.startswith("//"):
            return f"{self.settings.api_origin}{url}"
        return url
