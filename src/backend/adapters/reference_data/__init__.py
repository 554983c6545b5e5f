from .manifest import reference_data_from_manifest, load_reference_manifest

__all__ = ["load_reference_manifest", "reference_data_from_manifest"]
