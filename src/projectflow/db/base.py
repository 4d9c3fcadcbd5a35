"""Metadata registry used by alembic autogeneration."""

from __future__ import annotations

from sqlmodel import SQLModel

from .. import models  # noqa: F401

metadata = SQLModel.metadata

__all__ = ["metadata"]
