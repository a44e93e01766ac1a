from __future__ import annotations

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests / local runs).
JSONType = JSON().with_variant(JSONB(), "postgresql")
