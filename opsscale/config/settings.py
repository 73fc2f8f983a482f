"""
Application settings loaded from a YAML file, `.env` and the environment
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from opsscale.exceptions import ConfigurationError

CONFIG_FILE_ENV = "OPSSCALE_CONFIG"

# Environment variable names of existing deployments
ENV_FIELDS: dict[str, str] = {
    "HOST": "host",
    "PORT": "port",
    "LOG_LEVEL": "log_level",
    "MONGO_URI": "mongo_uri",
    "MONGO_DB": "mongo_database",
    "CONTACT_STORE_DIR": "contact_store_dir",
    "SENDGRID_SMTP_HOST": "smtp_host",
    "SENDGRID_SMTP_PORT": "smtp_port",
    "SENDGRID_SMTP_USER": "smtp_user",
    "SENDGRID_SMTP_PASS": "smtp_password",
    "SMTP_TIMEOUT": "smtp_timeout",
    "MAIL_FROM": "mail_from",
    "MAIL_TO": "mail_to",
    "SITE_NAME": "site_name",
    "CLOUDINARY_CLOUD_NAME": "cloudinary_cloud_name",
    "CLOUDINARY_API_KEY": "cloudinary_api_key",
    "CLOUDINARY_API_SECRET": "cloudinary_api_secret",
    "STATIC_DIR": "static_dir",
    "CORS_ORIGINS": "cors_origins",
}

CLOUDINARY_ENV = ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")


class Settings(BaseModel):
    """Typed runtime configuration"""

    model_config = ConfigDict(extra="ignore", frozen=True)

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    mongo_uri: Optional[str] = None
    mongo_database: str = "opsscale"
    contact_store_dir: Optional[Path] = None

    smtp_host: str = "smtp.sendgrid.net"
    smtp_port: int = 587
    smtp_user: str = "apikey"
    smtp_password: Optional[str] = None
    smtp_timeout: float = 30.0
    mail_from: str = "Ops Scale <noreply@opsscale.tech>"
    mail_to: str = "you@example.com"
    site_name: str = "Ops Scale"

    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    static_dir: Optional[Path] = None
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.upper()

    @property
    def mail_enabled(self) -> bool:
        """Mail requires the relay password; everything else has defaults"""
        return bool(self.smtp_password)

    @property
    def upload_enabled(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )

    def check(self) -> "EnvReport":
        """Report missing variables and degraded features

        Returns:
            EnvReport
        """
        report = EnvReport()

        if not self.mail_enabled:
            report.notes.append("SENDGRID_SMTP_PASS not set; email will be disabled.")

        cloudinary_values = {
            name: getattr(self, ENV_FIELDS[name]) for name in CLOUDINARY_ENV
        }
        if any(cloudinary_values.values()):
            report.missing.extend(
                name for name, value in cloudinary_values.items() if not value
            )
        else:
            report.notes.append("Cloudinary credentials not set; upload route disabled.")

        if "mail_from" not in self.model_fields_set:
            report.notes.append("MAIL_FROM not set; using default.")
        if "mail_to" not in self.model_fields_set:
            report.notes.append("MAIL_TO not set; using default.")
        if not self.mongo_uri:
            if self.contact_store_dir:
                report.notes.append(
                    f"MONGO_URI not set; storing submissions in {self.contact_store_dir}."
                )
            else:
                report.notes.append("MONGO_URI not set; DB features disabled.")

        return report


@dataclass
class EnvReport:
    """Result of the start-up environment check"""

    missing: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing


def load_settings(
    config_file: Optional[Path] = None,
    *,
    load_env: bool = True,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings

    Later sources win: field defaults, YAML file, `.env`, process environment.

    Args:
        config_file: YAML file (defaults to $OPSSCALE_CONFIG when set)
        load_env: Read `.env` from the working directory
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Settings

    Raises:
        ConfigurationError: If the YAML file is unreadable or a value is invalid
    """
    if load_env:
        load_dotenv(find_dotenv(usecwd=True))
    if environ is None:
        environ = os.environ

    if config_file is None and environ.get(CONFIG_FILE_ENV):
        config_file = Path(environ[CONFIG_FILE_ENV])

    values: dict[str, Any] = {}
    if config_file is not None:
        values.update(_load_yaml(Path(config_file)))

    for env_name, field_name in ENV_FIELDS.items():
        value = environ.get(env_name)
        if value:
            values[field_name] = value

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Missing config file: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config: {path}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {path}")
    return data
