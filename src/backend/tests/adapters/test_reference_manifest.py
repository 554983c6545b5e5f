from pathlib import Path

import pytest

from adapters.reference_data import load_reference_manifest, reference_data_from_manifest


FIXTURE_DIR = Path(__file__).parent / "fixtures" / "reference_data"


def test_reference_manifest_parses_every_kind():
    provider = load_reference_manifest(FIXTURE_DIR / "manifest.json")
    projects = provider.list_items("projects")
    assert [p.id for p in projects] == ["p-100", "p-101"]
    assert projects[0].detail == "Client: BC Hydro"
    assert projects[1].label == "Harbour bridge inspection"
    assert provider.list_items("aircraft")[0].label == "M300 RTK"
    assert provider.list_items("batteries") == []


def test_manifest_wrapper_is_optional():
    provider = reference_data_from_manifest({"operators": [{"id": 7, "label": "Kim Ray"}]})
    assert provider.list_items("operators")[0].id == "7"


@pytest.mark.parametrize(
    "manifest",
    [
        {"projects": {"id": "p"}},
        {"projects": ["p-1"]},
        {"projects": [{"label": "No id"}]},
        {"projects": [{"id": "p-1"}]},
    ],
)
def test_malformed_manifests_are_rejected(manifest):
    with pytest.raises(ValueError):
        reference_data_from_manifest(manifest)
