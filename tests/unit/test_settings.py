"""Test settings loading"""
from pathlib import Path

import pytest

from opsscale.config import Settings, load_settings
from opsscale.exceptions import ConfigurationError


class TestLoadSettings:
    """Test load_settings"""

    def test_defaults(self):
        settings = load_settings(load_env=False, environ={})
        assert settings.port == 3000
        assert settings.smtp_host == "smtp.sendgrid.net"
        assert settings.smtp_user == "apikey"
        assert settings.mongo_uri is None
        assert settings.mail_enabled is False
        assert settings.upload_enabled is False
        assert settings.cors_origins == ["*"]

    def test_environment_names(self):
        settings = load_settings(
            load_env=False,
            environ={
                "PORT": "8080",
                "MONGO_URI": "mongodb://db:27017/site",
                "SENDGRID_SMTP_PASS": "secret",
                "SENDGRID_SMTP_PORT": "465",
                "MAIL_TO": "team@opsscale.tech",
                "LOG_LEVEL": "debug",
                "CORS_ORIGINS": "https://opsscale.tech, https://www.opsscale.tech",
            },
        )
        assert settings.port == 8080
        assert settings.mongo_uri == "mongodb://db:27017/site"
        assert settings.smtp_port == 465
        assert settings.mail_enabled is True
        assert settings.mail_to == "team@opsscale.tech"
        assert settings.log_level == "DEBUG"
        assert settings.cors_origins == ["https://opsscale.tech", "https://www.opsscale.tech"]

    def test_empty_values_are_ignored(self):
        settings = load_settings(load_env=False, environ={"MONGO_URI": "", "PORT": ""})
        assert settings.mongo_uri is None
        assert settings.port == 3000

    def test_yaml_file_then_environment(self, tmp_path: Path):
        config_file = tmp_path / "opsscale.yaml"
        config_file.write_text(
            "port: 4000\nsite_name: Acme\nmail_from: Acme <hello@acme.test>\n"
        )

        settings = load_settings(config_file, load_env=False, environ={"PORT": "5000"})

        assert settings.port == 5000
        assert settings.site_name == "Acme"
        assert settings.mail_from == "Acme <hello@acme.test>"

    def test_config_file_from_environment(self, tmp_path: Path):
        config_file = tmp_path / "opsscale.yaml"
        config_file.write_text("contact_store_dir: /var/lib/opsscale\n")

        settings = load_settings(
            load_env=False, environ={"OPSSCALE_CONFIG": str(config_file)}
        )

        assert settings.contact_store_dir == Path("/var/lib/opsscale")

    def test_missing_config_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="Missing config file"):
            load_settings(tmp_path / "absent.yaml", load_env=False, environ={})

    def test_invalid_yaml(self, tmp_path: Path):
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("port: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_settings(config_file, load_env=False, environ={})

    def test_yaml_must_be_mapping(self, tmp_path: Path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- port\n- 4000\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(config_file, load_env=False, environ={})

    def test_invalid_value(self):
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_settings(load_env=False, environ={"PORT": "not-a-port"})


class TestEnvReport:
    """Test Settings.check"""

    def test_bare_environment_notes(self):
        report = Settings().check()
        assert report.ok
        assert "SENDGRID_SMTP_PASS not set; email will be disabled." in report.notes
        assert "MAIL_FROM not set; using default." in report.notes
        assert "MAIL_TO not set; using default." in report.notes
        assert "MONGO_URI not set; DB features disabled." in report.notes

    def test_fully_configured(self):
        report = Settings(
            mongo_uri="mongodb://db",
            smtp_password="secret",
            mail_from="a@b.co",
            mail_to="c@d.co",
            cloudinary_cloud_name="demo",
            cloudinary_api_key="key",
            cloudinary_api_secret="secret",
        ).check()
        assert report.ok
        assert report.notes == []

    def test_partial_cloudinary_is_missing(self):
        report = Settings(cloudinary_cloud_name="demo").check()
        assert not report.ok
        assert report.missing == ["CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"]

    def test_file_store_note(self, tmp_path: Path):
        report = Settings(contact_store_dir=tmp_path).check()
        assert f"MONGO_URI not set; storing submissions in {tmp_path}." in report.notes
