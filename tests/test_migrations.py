import argparse
from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parents[1]


def alembic_config(db_path: Path) -> Config:
    # no ini file, so alembic leaves the app's logging config alone
    cfg = Config()
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.cmd_opts = argparse.Namespace(x=[f"db_url=sqlite+aiosqlite:///{db_path}"])
    return cfg


def table_names(db_path: Path) -> set[str]:
    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        return set(sa.inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_upgrade_creates_relationship_tables_and_downgrade_drops_them(tmp_path):
    db_path = tmp_path / "migrations.db"
    cfg = alembic_config(db_path)

    command.upgrade(cfg, "head")
    assert {"users", "friend_edges", "friend_requests"} <= table_names(db_path)

    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        uniques = sa.inspect(engine).get_unique_constraints("friend_edges")
    finally:
        engine.dispose()
    assert any(set(u["column_names"]) == {"account_id", "related_account_id"} for u in uniques)

    command.downgrade(cfg, "base")
    assert table_names(db_path) & {"users", "friend_edges", "friend_requests"} == set()
