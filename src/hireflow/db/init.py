from __future__ import annotations

from pathlib import Path

from sqlalchemy import inspect

from hireflow.config import get_settings
from hireflow.db.base import Base
from hireflow.db.session import engine
from hireflow.db import models  # noqa: F401


def sqlite_path(database_url: str) -> Path | None:
    prefix = "sqlite:///"
    if not database_url.startswith(prefix) or database_url == f"{prefix}:memory:":
        return None
    return Path(database_url[len(prefix):])


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir, settings.upload_dir, settings.screenshot_dir]
    db_path = sqlite_path(settings.database_url)
    if db_path is not None:
        paths.append(db_path.parent)
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(inspect(engine).get_table_names())}
