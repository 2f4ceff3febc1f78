"""Configuration for an export run.

Settings come from environment variables (a `.env` file is loaded by the CLI)
and are bundled with the open database connection into an explicit
`ExportContext` that every component receives.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from ..utils.log import get_logger
from .errors import ConfigurationError

log = get_logger(__name__)

DEFAULT_FILES_DIR = Path("/var/www/files")
DEFAULT_LOCALE = "en"
DEFAULT_TEMPLATE = Path("template.html")
DEFAULT_DB_PORT = 3306


def normalize_locale(value: str | None) -> str:
    """Convert a locale tag such as 'en-US' to the OJS form 'en_US'."""
    if not value:
        return DEFAULT_LOCALE
    return value.strip().replace("-", "_")


def format_date(value: date) -> str:
    """Format a date as M/D/YYYY."""
    return f"{value.month}/{value.day}/{value.year}"


class ExportSettings:
    """Database and filesystem settings read from the environment."""

    def __init__(
        self,
        db_name: str | None = None,
        db_user: str | None = None,
        db_password: str | None = None,
        db_host: str | None = None,
        db_port: int = DEFAULT_DB_PORT,
        db_socket: str | None = None,
        files_dir: Path = DEFAULT_FILES_DIR,
        locale: str = DEFAULT_LOCALE,
        template_path: Path = DEFAULT_TEMPLATE,
    ) -> None:
        self.db_name = db_name
        self.db_user = db_user
        self.db_password = db_password
        self.db_host = db_host
        self.db_port = db_port
        self.db_socket = db_socket
        self.files_dir = files_dir
        self.locale = locale
        self.template_path = template_path

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ExportSettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigurationError: If DB_PORT is not an integer
        """
        env = os.environ if environ is None else environ
        port = env.get("DB_PORT") or str(DEFAULT_DB_PORT)
        try:
            db_port = int(port)
        except ValueError as e:
            raise ConfigurationError(f"DB_PORT must be an integer, got {port!r}") from e

        settings = cls(
            db_name=env.get("DB_NAME"),
            db_user=env.get("DB_USER"),
            db_password=env.get("DB_PASSWORD"),
            db_host=env.get("DB_HOST") or None,
            db_port=db_port,
            db_socket=env.get("DB_SOCKET") or None,
            files_dir=Path(env.get("OJS_FILES_DIR") or DEFAULT_FILES_DIR),
            locale=normalize_locale(env.get("LOCALE")),
            template_path=Path(env.get("REVIEW_TEMPLATE") or DEFAULT_TEMPLATE),
        )
        log.debug("export_settings_loaded", **settings.get_summary())
        return settings

    def validate(self) -> None:
        """Check that enough is configured to open a database connection."""
        missing = [name for name, value in (("DB_NAME", self.db_name), ("DB_USER", self.db_user)) if not value]
        if not self.db_host and not self.db_socket:
            missing.append("DB_HOST or DB_SOCKET")
        if missing:
            raise ConfigurationError(
                f"Missing database settings: {', '.join(missing)}", {"missing": missing}
            )

    def get_summary(self) -> dict[str, str]:
        """Settings as strings, password masked."""
        return {
            "db_name": str(self.db_name),
            "db_user": str(self.db_user),
            "db_password": "***" if self.db_password else "",
            "db_host": str(self.db_host),
            "db_port": str(self.db_port),
            "db_socket": str(self.db_socket),
            "files_dir": str(self.files_dir),
            "locale": self.locale,
            "template_path": str(self.template_path),
        }


@dataclass
class ExportContext:
    """Everything one export run needs, passed explicitly to each component."""

    conn: Any
    locale: str
    output_dir: Path
    files_dir: Path
    template_path: Path
    date_generated: str

    @classmethod
    def create(
        cls,
        conn: Any,
        settings: ExportSettings,
        output_dir: Path,
        today: date | None = None,
    ) -> "ExportContext":
        return cls(
            conn=conn,
            locale=settings.locale,
            output_dir=output_dir,
            files_dir=settings.files_dir,
            template_path=settings.template_path,
            date_generated=format_date(today or date.today()),
        )
