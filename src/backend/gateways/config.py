from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .attachments import AttachmentGateway, BlobAttachmentStore, LocalAttachmentStore
from .persistence import InMemoryPersistence, LocalJsonPersistence, PersistenceGateway


load_dotenv()


@dataclass(frozen=True)
class GatewayConfig:
    persistence_backend: str
    attachment_backend: str
    data_dir: Path
    attachment_container: str


def get_gateway_config() -> GatewayConfig:
    """
    Load gateway configuration from environment variables.

    Reads:
      FORMS_PERSISTENCE_BACKEND (memory|local), FORMS_ATTACHMENT_BACKEND (local|blob),
      FORMS_DATA_DIR, AZURE_STORAGE_CONTAINER
    """
    data_dir = os.getenv("FORMS_DATA_DIR", "").strip()
    return GatewayConfig(
        persistence_backend=os.getenv("FORMS_PERSISTENCE_BACKEND", "memory").strip().lower(),
        attachment_backend=os.getenv("FORMS_ATTACHMENT_BACKEND", "local").strip().lower(),
        data_dir=Path(data_dir) if data_dir else _default_data_dir(),
        attachment_container=os.getenv("AZURE_STORAGE_CONTAINER", "attachments").strip() or "attachments",
    )


def get_persistence_gateway(config: GatewayConfig | None = None) -> PersistenceGateway:
    """Resolve a persistence implementation by name (memory|local)."""
    config = config or get_gateway_config()
    backend = config.persistence_backend
    if backend in ("memory", ""):
        return InMemoryPersistence()
    if backend == "local":
        return LocalJsonPersistence(root_dir=config.data_dir / "records")
    raise ValueError(f"Unknown persistence backend '{backend}' (expected 'memory' or 'local').")


def get_attachment_gateway(config: GatewayConfig | None = None) -> AttachmentGateway:
    """Resolve an attachment store by name (local|blob)."""
    config = config or get_gateway_config()
    backend = config.attachment_backend
    if backend in ("local", ""):
        return LocalAttachmentStore(root_dir=config.data_dir / "attachments")
    if backend == "blob":
        return BlobAttachmentStore(container_name=config.attachment_container)
    raise ValueError(f"Unknown attachment backend '{backend}' (expected 'local' or 'blob').")


def _default_data_dir() -> Path:
    return Path(__file__).resolve().parents[3] / "data" / "forms"
