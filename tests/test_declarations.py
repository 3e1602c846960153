"""
Tests for declaration sources and the declaration validator.
"""

import pytest

from grantly.core.declarations import DeclarationValidator
from grantly.core.manifest import (
    ManifestDeclarationSource,
    StaticDeclarationSource,
    load_manifest,
)
from grantly.exceptions import InvalidConfigurationError, NotDeclaredError

APP = "com.example.app"


@pytest.fixture
def static_source():
    return StaticDeclarationSource({APP: ["camera", "fine-location"]})


class TestDeclarationValidator:
    def test_declared_set_is_cached(self, static_source):
        validator = DeclarationValidator(static_source, APP)
        validator.declared()
        validator.is_declared("camera")
        validator.validate(["camera"])
        assert static_source.reads == 1

    def test_invalidate_rereads(self, static_source):
        validator = DeclarationValidator(static_source, APP)
        validator.declared()
        validator.invalidate()
        validator.declared()
        assert static_source.reads == 2

    def test_validate_lists_every_missing_capability(self, static_source):
        validator = DeclarationValidator(static_source, APP)
        with pytest.raises(NotDeclaredError) as exc_info:
            validator.validate(["camera", "nfc", "read-contacts", "nfc"])
        assert exc_info.value.missing == ["nfc", "read-contacts"]
        assert "read-contacts" in exc_info.value.resolution_guidance()

    def test_blank_identifier_is_never_declared(self, static_source):
        validator = DeclarationValidator(static_source, APP)
        assert not validator.is_declared("")
        assert not validator.is_declared("   ")

    def test_other_identity_has_own_cache(self, static_source):
        validator = DeclarationValidator(static_source, APP)
        assert validator.declared("com.other.app") == frozenset()
        assert "camera" in validator.declared()


class TestManifestDeclarationSource:
    def test_reads_capabilities(self, tmp_path):
        manifest = tmp_path / "grantly.yaml"
        manifest.write_text("app: com.example.app\ncapabilities:\n  - camera\n  - overlay\n")
        source = ManifestDeclarationSource(manifest)
        assert source.declared_capabilities(APP) == ["camera", "overlay"]

    def test_other_app_gets_nothing(self, tmp_path):
        manifest = tmp_path / "grantly.yaml"
        manifest.write_text("app: com.example.app\ncapabilities: [camera]\n")
        source = ManifestDeclarationSource(manifest)
        assert source.declared_capabilities("com.other.app") == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidConfigurationError) as exc_info:
            load_manifest(tmp_path / "missing.yaml")
        assert not exc_info.value.cosmetic

    def test_bad_shape(self, tmp_path):
        manifest = tmp_path / "grantly.yaml"
        manifest.write_text("capabilities: camera\n")
        with pytest.raises(InvalidConfigurationError):
            load_manifest(manifest)

    def test_bad_yaml(self, tmp_path):
        manifest = tmp_path / "grantly.yaml"
        manifest.write_text("capabilities: [camera\n")
        with pytest.raises(InvalidConfigurationError):
            load_manifest(manifest)
