"""Custom SQLAlchemy column types for portability."""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer

# SQLite only autoincrements INTEGER PRIMARY KEY, so BIGINT ids fall back to INTEGER there.
IdType = BigInteger().with_variant(Integer(), "sqlite")
