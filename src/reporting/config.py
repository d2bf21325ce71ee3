"""Database connectivity settings for the report query."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from ..common.env import env_optional, require_env
from ..common.results import ConfigurationError

JDBC_PREFIX = "jdbc:"
DRIVER_OVERRIDES = {"postgresql": "postgresql+psycopg", "postgres": "postgresql+psycopg"}


def build_sqlalchemy_url(db_url: str, user: str | None = None, password: str | None = None) -> URL:
    """
    Turn ``DB_URL`` (SQLAlchemy or JDBC style) plus optional credentials into a URL.

    ``jdbc:postgresql://db:5432/school`` becomes ``postgresql+psycopg://db:5432/school``;
    ``user`` and ``password`` override whatever the URL carries.
    """
    raw = db_url.strip()
    if raw.lower().startswith(JDBC_PREFIX):
        raw = raw[len(JDBC_PREFIX):]
    try:
        url = make_url(raw)
    except ArgumentError as exc:
        raise ConfigurationError(f"DB_URL is not a valid database URL: {exc}") from exc

    driver = DRIVER_OVERRIDES.get(url.drivername)
    if driver:
        url = url.set(drivername=driver)
    if user:
        url = url.set(username=user)
    if password:
        url = url.set(password=password)
    return url


@dataclass(slots=True, frozen=True)
class DatabaseConfig:
    """Connection parameters for the course database."""

    url: str
    user: str | None = None
    password: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DatabaseConfig":
        return cls(
            url=require_env("DB_URL", environ),
            user=env_optional("DB_USER", environ),
            password=env_optional("DB_PASSWORD", environ),
        )

    def sqlalchemy_url(self) -> URL:
        return build_sqlalchemy_url(self.url, self.user, self.password)
