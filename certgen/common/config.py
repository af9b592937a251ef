"""Settings: subject defaults, validity periods, key sizes (.env aware)."""

import os
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field


CA_DAYS = 3650
CERT_DAYS = 825
CA_KEY_SIZE = 4096
CERT_KEY_SIZE = 2048


class Subject(BaseModel):
    """Distinguished name fields shared by the root CA and leaf certificates."""
    country: str = Field(default="SG", min_length=2, max_length=2)
    state: str = Field(default="Singapore", min_length=1)
    locality: str = Field(default="Singapore", min_length=1)
    organization: str = Field(default="HomeLab", min_length=1)
    organizational_unit: str = Field(default="NginxProxy", min_length=1)
    ca_common_name: str = Field(default="HomeLab Root CA", min_length=1)


class Settings(BaseModel):
    """Everything a run needs besides the CLI arguments."""
    base_dir: Path = Field(default_factory=Path.cwd)
    subject: Subject = Field(default_factory=Subject)
    ca_days: int = Field(default=CA_DAYS, gt=0)
    cert_days: int = Field(default=CERT_DAYS, gt=0)
    ca_key_size: int = Field(default=CA_KEY_SIZE, ge=1024)
    cert_key_size: int = Field(default=CERT_KEY_SIZE, ge=1024)


def _env(name: str, default):
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def load_settings(base_dir: Optional[Path] = None) -> Settings:
    """Build settings from the environment (and a .env file if present).

    Args:
        base_dir: Directory the ca/ and certs/ trees live in. Overrides
            CERTGEN_BASE_DIR; falls back to the current working directory.

    Returns:
        Validated settings

    Raises:
        pydantic.ValidationError if a variable holds an invalid value
    """
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)

    subject_defaults = Subject()
    subject = Subject(
        country=_env("CERTGEN_COUNTRY", subject_defaults.country),
        state=_env("CERTGEN_STATE", subject_defaults.state),
        locality=_env("CERTGEN_LOCALITY", subject_defaults.locality),
        organization=_env("CERTGEN_ORG", subject_defaults.organization),
        organizational_unit=_env("CERTGEN_ORG_UNIT", subject_defaults.organizational_unit),
        ca_common_name=_env("CERTGEN_CA_CN", subject_defaults.ca_common_name),
    )

    if base_dir is None:
        base_dir = Path(_env("CERTGEN_BASE_DIR", os.getcwd()))

    return Settings(
        base_dir=Path(base_dir).resolve(),
        subject=subject,
        ca_days=_env("CERTGEN_CA_DAYS", CA_DAYS),
        cert_days=_env("CERTGEN_CERT_DAYS", CERT_DAYS),
        ca_key_size=_env("CERTGEN_CA_KEY_SIZE", CA_KEY_SIZE),
        cert_key_size=_env("CERTGEN_CERT_KEY_SIZE", CERT_KEY_SIZE),
    )
