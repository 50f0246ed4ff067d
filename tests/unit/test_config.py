"""Unit tests for config parsing module."""

from __future__ import annotations

import os
import tempfile

import pytest

from ami_provider import config as ap_config

ENV_VARS = [
    "AMI_PROVIDER_CONFIG",
    "AMI_PROVIDER_IMAGE_CACHE_TTL",
    "AMI_PROVIDER_VERSION_CACHE_TTL",
    "AMI_PROVIDER_DESCRIBE_PAGE_SIZE",
    "AMI_PROVIDER_DEFAULT_OWNERS",
    "AMI_PROVIDER_DEFAULT_IMAGE_FAMILY",
    "AMI_PROVIDER_MONITORING_ENABLED",
    "AMI_PROVIDER_MONITORING_BIND",
]


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Start every test from defaults and leave no options object behind."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    ap_config.reset_config()
    yield
    ap_config.reset_config()


class TestConfigParsing:
    """Test config file parsing."""

    def test_defaults_without_config(self):
        """Test that defaults work when no config file exists."""
        assert ap_config.image_cache_ttl() == 60
        assert ap_config.version_cache_ttl() == 900
        assert ap_config.describe_page_size() == 500
        assert ap_config.default_owners() == ["self", "amazon"]
        assert ap_config.default_image_family() == "AL2"
        assert ap_config.monitoring_enabled() is False
        assert ap_config.monitoring_bind() == "127.0.0.1:8080"

    def test_env_var_overrides(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("AMI_PROVIDER_IMAGE_CACHE_TTL", "120")
        monkeypatch.setenv("AMI_PROVIDER_DESCRIBE_PAGE_SIZE", "50")
        monkeypatch.setenv("AMI_PROVIDER_DEFAULT_OWNERS", "self 123456789012")
        monkeypatch.setenv("AMI_PROVIDER_MONITORING_ENABLED", "yes")

        assert ap_config.image_cache_ttl() == 120
        assert ap_config.describe_page_size() == 50
        assert ap_config.default_owners() == ["self", "123456789012"]
        assert ap_config.monitoring_enabled() is True

    def test_invalid_env_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("AMI_PROVIDER_IMAGE_CACHE_TTL", "soon")
        assert ap_config.image_cache_ttl() == 60

    def test_config_file_parsing(self, monkeypatch):
        """Test parsing from config file."""
        with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".conf") as f:
            f.write(
                """[ami_provider]
image_cache_ttl = 300
version_cache_ttl = 60
default_owners = self,amazon,123456789012
default_image_family = Bottlerocket
monitoring_enabled = true
monitoring_bind = 0.0.0.0:9090
"""
            )
            config_file = f.name

        try:
            monkeypatch.setenv("AMI_PROVIDER_CONFIG", config_file)

            assert ap_config.image_cache_ttl() == 300
            assert ap_config.version_cache_ttl() == 60
            assert ap_config.default_owners() == ["self", "amazon", "123456789012"]
            assert ap_config.default_image_family() == "Bottlerocket"
            assert ap_config.monitoring_enabled() is True
            assert ap_config.monitoring_bind() == "0.0.0.0:9090"
            # Keys absent from the file keep their defaults
            assert ap_config.describe_page_size() == 500
        finally:
            os.unlink(config_file)

    def test_missing_config_file(self, monkeypatch):
        monkeypatch.setenv("AMI_PROVIDER_CONFIG", "/nonexistent/ami-provider.conf")
        assert ap_config.image_cache_ttl() == 60

    def test_config_file_without_section(self, monkeypatch):
        with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".conf") as f:
            f.write("[other]\nimage_cache_ttl = 5\n")
            config_file = f.name
        try:
            monkeypatch.setenv("AMI_PROVIDER_CONFIG", config_file)
            assert ap_config.image_cache_ttl() == 60
        finally:
            os.unlink(config_file)

    def test_bool_parsing(self, monkeypatch):
        """Test boolean value parsing."""
        test_cases = [
            ("true", True),
            ("True", True),
            ("1", True),
            ("yes", True),
            ("on", True),
            ("false", False),
            ("False", False),
            ("0", False),
            ("no", False),
            ("off", False),
        ]

        for value, expected in test_cases:
            monkeypatch.setenv("AMI_PROVIDER_MONITORING_ENABLED", value)
            assert ap_config.monitoring_enabled() == expected

    def test_invalid_monitoring_bind(self, monkeypatch):
        monkeypatch.setenv("AMI_PROVIDER_MONITORING_BIND", "localhost")
        assert ap_config.monitoring_bind() == "127.0.0.1:8080"

    def test_env_overrides_config(self, monkeypatch):
        """Test that env vars override config file values."""
        with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".conf") as f:
            f.write("[ami_provider]\ndefault_image_family = Ubuntu\n")
            config_file = f.name

        try:
            monkeypatch.setenv("AMI_PROVIDER_CONFIG", config_file)
            monkeypatch.setenv("AMI_PROVIDER_DEFAULT_IMAGE_FAMILY", "Bottlerocket")
            assert ap_config.default_image_family() == "Bottlerocket"

            monkeypatch.delenv("AMI_PROVIDER_DEFAULT_IMAGE_FAMILY")
            assert ap_config.default_image_family() == "Ubuntu"
        finally:
            os.unlink(config_file)


class TestConfigInitialization:
    """Test config module initialization with options object."""

    def test_config_value_from_options_object(self):
        """Test reading config values from an initialized options object."""

        class MockOptions:
            ami_provider_image_cache_ttl = 30
            ami_provider_default_image_family = "Windows2022"
            ami_provider_monitoring_enabled = "true"
            ami_provider_describe_page_size = "100"

        ap_config.initialize(MockOptions())

        assert ap_config.image_cache_ttl() == 30
        assert ap_config.default_image_family() == "Windows2022"
        assert ap_config.monitoring_enabled() is True
        assert ap_config.describe_page_size() == 100

    def test_precedence_env_var_over_options(self, monkeypatch):
        """Test env var takes precedence over options object."""

        class MockOptions:
            ami_provider_image_cache_ttl = 30

        ap_config.initialize(MockOptions())
        monkeypatch.setenv("AMI_PROVIDER_IMAGE_CACHE_TTL", "45")
        assert ap_config.image_cache_ttl() == 45

        monkeypatch.delenv("AMI_PROVIDER_IMAGE_CACHE_TTL")
        assert ap_config.image_cache_ttl() == 30

    def test_options_missing_attribute_falls_back(self):
        """Test that missing attributes in options object fall back to defaults."""

        class MockOptions:
            ami_provider_image_cache_ttl = 30

        ap_config.initialize(MockOptions())
        assert ap_config.version_cache_ttl() == 900

    def test_reset_config_clears_options(self):
        """Test that reset_config() clears the options object."""

        class MockOptions:
            ami_provider_default_image_family = "Ubuntu"

        ap_config.initialize(MockOptions())
        assert ap_config.default_image_family() == "Ubuntu"

        ap_config.reset_config()
        assert ap_config.default_image_family() == "AL2"
