"""Configuration objects and input loading for the SALON BOARD agent."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .errors import ConfigError
from .models import Credentials, ReservationQuery

DEFAULT_BLOCKED_DOMAINS = [
    "googletagmanager.com",
    "googleadservices.com",
    "doubleclick.net",
    "google-analytics.com",
    "karte.io",
    "fout.jp",
]

DEFAULT_BLOCKED_RESOURCE_TYPES = ["image", "font", "stylesheet"]

# Headless Chromium advertises "HeadlessChrome" in sec-ch-ua, which the portal rejects.
DEFAULT_HEADER_OVERRIDES = {"sec-ch-ua": ""}


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables."""

    login_url: str = Field("https://salonboard.com/login/", alias="SALONBOARD_LOGIN_URL")
    reserve_base_url: str = Field(
        "https://salonboard.com/CLP/bt/reserve/net",
        alias="SALONBOARD_RESERVE_BASE_URL",
    )
    login_title: str = Field("ログイン：SALON BOARD", alias="SALONBOARD_LOGIN_TITLE")
    home_title: str = Field("SALON BOARD : TOP", alias="SALONBOARD_HOME_TITLE")
    headless: bool = Field(True, alias="SALONBOARD_HEADLESS")
    login_timeout_seconds: int = Field(30, alias="SALONBOARD_LOGIN_TIMEOUT_SECONDS")
    timeout_seconds: int = Field(30, alias="SALONBOARD_TIMEOUT_SECONDS")
    proxy_url: Optional[SecretStr] = Field(None, alias="SALONBOARD_PROXY_URL")
    blocked_domains: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS),
        alias="SALONBOARD_BLOCKED_DOMAINS",
    )
    blocked_resource_types: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_RESOURCE_TYPES),
        alias="SALONBOARD_BLOCKED_RESOURCE_TYPES",
    )
    input_path: Path = Field(Path("INPUT.json"), alias="SALONBOARD_INPUT_PATH")
    save_snapshots: bool = Field(True, alias="SALONBOARD_SAVE_SNAPSHOTS")
    artifact_dir: Path = Field(Path("storage/snapshots"), alias="SALONBOARD_ARTIFACT_DIR")
    dataset_dir: Path = Field(Path("storage/datasets/default"), alias="SALONBOARD_DATASET_DIR")
    result_webhook_url: Optional[str] = Field(None, alias="SALONBOARD_RESULT_WEBHOOK_URL")
    strict_fields: bool = Field(False, alias="SALONBOARD_STRICT_FIELDS")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("blocked_domains", "blocked_resource_types", mode="before")
    @classmethod
    def split_csv(cls, value: Any) -> Any:
        """Accept comma separated lists from the environment."""
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    def reservation_url(self, reserve_id: str) -> str:
        """Construct the reservation edit URL for a reservation id."""
        return (
            f"{self.reserve_base_url.rstrip('/')}/"
            f"instantReserveChange/?reserveId={quote(reserve_id, safe='')}"
        )


class RunInput(BaseModel):
    """Raw input object handed to a run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    password: SecretStr = Field(alias="password")
    reserve_id: str = Field(alias="reserveId", min_length=1)

    @field_validator("password")
    @classmethod
    def password_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("password must not be empty")
        return value

    @property
    def credentials(self) -> Credentials:
        return Credentials(user_id=self.user_id, password=self.password.get_secret_value())

    @property
    def query(self) -> ReservationQuery:
        return ReservationQuery(reserve_id=self.reserve_id)


def parse_run_input(data: Optional[dict[str, Any]]) -> RunInput:
    """Validate a raw input object, raising ``ConfigError`` on missing fields."""
    if not data:
        raise ConfigError("Input is required")
    try:
        return RunInput.model_validate(data)
    except ValidationError as exc:
        fields = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
        raise ConfigError(f"Input has missing or invalid fields: {', '.join(fields)}") from exc


def load_run_input(path: Path, *, reserve_id: Optional[str] = None) -> RunInput:
    """Load the input object from a JSON file.

    ``reserve_id`` overrides the ``reserveId`` stored in the file, which lets the
    same credentials file serve several reservations.
    """
    if not path.is_file():
        raise ConfigError(f"Input is required (no input file at {path})")

    try:
        data = json.loads(path.read_text(encoding="utf-8") or "null")
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Input file {path} is not valid JSON: {exc}") from exc

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"Input file {path} must contain a JSON object")

    if data and reserve_id:
        data = {**data, "reserveId": reserve_id}
    return parse_run_input(data)
