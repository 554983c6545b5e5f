import pytest

from gateways.attachments import AttachmentUpload, LocalAttachmentStore, attachment_path
from gateways.config import GatewayConfig, get_attachment_gateway
from gateways.identity import StaticIdentityProvider


def test_local_store_uploads_under_the_namespace(tmp_path):
    store = LocalAttachmentStore(root_dir=tmp_path)
    ref = store.upload("form_1", "photos", AttachmentUpload(name="../../site photo.jpg", content=b"abc"))

    assert ref.path.startswith("form_1/photos/")
    assert ref.path.endswith("_site_photo.jpg")
    assert ref.size == 3
    assert ref.type == "image/jpeg"
    assert (tmp_path / ref.path).read_bytes() == b"abc"

    store.delete(ref.path)
    assert not (tmp_path / ref.path).exists()


def test_local_store_refuses_paths_outside_its_root(tmp_path):
    store = LocalAttachmentStore(root_dir=tmp_path / "store")
    with pytest.raises(ValueError):
        store.delete("../outside.txt")


def test_deleting_a_missing_file_propagates(tmp_path):
    store = LocalAttachmentStore(root_dir=tmp_path)
    with pytest.raises(FileNotFoundError):
        store.delete("form_1/photos/nothing.jpg")


def test_attachment_paths_are_unique():
    assert attachment_path("ns", "f", "a.txt") != attachment_path("ns", "f", "a.txt")


def test_blob_backend_needs_azure_settings(tmp_path, monkeypatch):
    monkeypatch.delenv("AZURE_STORAGE_ACCOUNT_URL", raising=False)
    monkeypatch.delenv("AZURE_STORAGE_ACCOUNT_NAME", raising=False)
    config = GatewayConfig(persistence_backend="memory", attachment_backend="blob", data_dir=tmp_path, attachment_container="x")
    # Either the optional azure extra is missing or the account settings are; both are RuntimeErrors.
    with pytest.raises(RuntimeError):
        get_attachment_gateway(config)


def test_static_identity_provider():
    identity = StaticIdentityProvider(display_name="Sam Lee", user_id="u-1").current_identity()
    assert identity.display_name == "Sam Lee"
    assert identity.user_id == "u-1"
