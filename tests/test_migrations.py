from __future__ import annotations

from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

REPO_ROOT = Path(__file__).resolve().parents[1]


def _alembic_config(db_path: Path) -> Config:
    # No ini file: fileConfig would otherwise reset logging for the rest of the run.
    cfg = Config()
    cfg.set_main_option("script_location", str(REPO_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    return cfg


def test_upgrade_head_creates_schema(tmp_path: Path):
    db_path = tmp_path / "migrated.db"
    command.upgrade(_alembic_config(db_path), "head")

    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        insp = sa.inspect(engine)
        tables = set(insp.get_table_names())
        assert {"users", "notes", "note_shares", "note_attachments", "activity_log"} <= tables

        uniques = {u["name"] for u in insp.get_unique_constraints("note_shares")}
        assert "uq_note_shares_note_id_shared_with_user_id" in uniques

        note_columns = {c["name"] for c in insp.get_columns("notes")}
        assert {"owner_user_id", "archived", "archived_at", "due_date", "version"} <= note_columns
    finally:
        engine.dispose()


def test_downgrade_base_drops_schema(tmp_path: Path):
    db_path = tmp_path / "migrated.db"
    cfg = _alembic_config(db_path)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        assert set(sa.inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
