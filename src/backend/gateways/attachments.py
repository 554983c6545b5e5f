from __future__ import annotations

import mimetypes
import os
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from common.form_engine.models import FileReference

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class AttachmentUpload(BaseModel):
    name: str
    content: bytes
    content_type: str = ""
    size: int = Field(default=0, ge=0)


class AttachmentGateway(Protocol):
    def upload(self, namespace: str, field_id: str, upload: AttachmentUpload) -> FileReference:
        ...

    def delete(self, path: str) -> None:
        ...


def attachment_path(namespace: str, field_id: str, name: str) -> str:
    safe = _UNSAFE_NAME.sub("_", Path(name).name).strip("._") or "file"
    return f"{namespace}/{field_id}/{uuid.uuid4().hex[:8]}_{safe}"


def _content_type(upload: AttachmentUpload) -> str:
    if upload.content_type:
        return upload.content_type
    guessed, _ = mimetypes.guess_type(upload.name)
    return guessed or "application/octet-stream"


@dataclass(frozen=True)
class LocalAttachmentStore:
    root_dir: Path

    def upload(self, namespace: str, field_id: str, upload: AttachmentUpload) -> FileReference:
        path = attachment_path(namespace, field_id, upload.name)
        out_path = self.root_dir / path
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(upload.content)
        return FileReference(
            url=out_path.resolve().as_uri(),
            path=path,
            name=upload.name,
            size=upload.size or len(upload.content),
            type=_content_type(upload),
        )

    def delete(self, path: str) -> None:
        target = (self.root_dir / path).resolve()
        if self.root_dir.resolve() not in target.parents:
            raise ValueError(f"Attachment path escapes the store: {path}")
        target.unlink()


class BlobAttachmentStore:
    def __init__(
        self,
        *,
        container_name: str = "attachments",
        account_url: str | None = None,
    ) -> None:
        try:
            from azure.identity import DefaultAzureCredential
            from azure.storage.blob import BlobServiceClient, ContentSettings
        except ImportError as exc:
            raise RuntimeError(
                "azure-storage-blob is not installed; cannot enable blob attachments."
            ) from exc

        account_url = account_url or os.getenv("AZURE_STORAGE_ACCOUNT_URL", "").strip()
        if not account_url:
            account_name = os.getenv("AZURE_STORAGE_ACCOUNT_NAME", "").strip()
            if not account_name:
                raise RuntimeError(
                    "AZURE_STORAGE_ACCOUNT_URL or AZURE_STORAGE_ACCOUNT_NAME is required for blob attachments."
                )
            account_url = f"https://{account_name}.blob.core.windows.net"

        credential = DefaultAzureCredential()
        self._client = BlobServiceClient(account_url=account_url, credential=credential)
        self._container = container_name
        self._content_settings = ContentSettings

    def upload(self, namespace: str, field_id: str, upload: AttachmentUpload) -> FileReference:
        path = attachment_path(namespace, field_id, upload.name)
        content_type = _content_type(upload)
        container = self._client.get_container_client(self._container)
        blob = container.upload_blob(
            path,
            upload.content,
            overwrite=True,
            content_settings=self._content_settings(content_type=content_type),
        )
        return FileReference(
            url=blob.url,
            path=path,
            name=upload.name,
            size=upload.size or len(upload.content),
            type=content_type,
        )

    def delete(self, path: str) -> None:
        container = self._client.get_container_client(self._container)
        container.delete_blob(path)
