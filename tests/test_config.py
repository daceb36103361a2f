# tests/test_config.py
"""Tests for configuration loading."""

from pathlib import Path

import pytest

from gallery.config import GalleryConfig, load_config


class TestGalleryConfig:
    """Tests for GalleryConfig."""

    def test_defaults(self):
        config = GalleryConfig()
        assert config.overpayment == "seller"
        assert config.port == 8080
        assert config.data_dir == Path("~/.gallery").expanduser()

    def test_from_yaml(self):
        config = GalleryConfig.from_yaml("""
data_dir: /tmp/gallery
overpayment: refund
port: 9000
log_level: debug
""")
        assert config.data_dir == Path("/tmp/gallery")
        assert config.overpayment == "refund"
        assert config.port == 9000
        assert config.log_level == "DEBUG"

    def test_empty_yaml(self):
        assert GalleryConfig.from_yaml("") == GalleryConfig()

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="colour"):
            GalleryConfig.from_yaml("colour: blue\n")

    def test_bad_overpayment(self):
        with pytest.raises(ValueError):
            GalleryConfig(overpayment="charity")

    def test_bad_port(self):
        with pytest.raises(ValueError):
            GalleryConfig(port=70000)

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            GalleryConfig(log_level="LOUD")

    def test_not_a_mapping(self):
        with pytest.raises(ValueError):
            GalleryConfig.from_yaml("- a\n- b\n")

    def test_to_dict_roundtrip(self):
        config = GalleryConfig(data_dir="/srv/gallery", port=0)
        assert GalleryConfig.from_dict(config.to_dict()) == config


class TestLoadConfig:
    """Tests for load_config()."""

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "gallery.yaml"
        path.write_text("port: 1234\n")
        assert load_config(path).port == 1234

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "gallery.yaml"
        path.write_text("overpayment: refund\n")
        monkeypatch.setenv("GALLERY_CONFIG", str(path))
        assert load_config().overpayment == "refund"

    def test_empty_env_var_means_defaults(self, monkeypatch):
        monkeypatch.setenv("GALLERY_CONFIG", "")
        assert load_config() == GalleryConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_config(tmp_path / "missing.yaml")
