from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.staffing_engine.staffing_engine.common.logging_utils import setup_plain_logging
from src.staffing_engine.staffing_engine.database.bootstrap import apply_schema, list_tables


def main() -> None:
    setup_plain_logging()
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    tables = list_tables(db_config)
    logging.getLogger("staffing_engine.scripts").info(
        "schema_ready",
        extra={
            "target": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
            "tables": len(tables),
        },
    )


if __name__ == "__main__":
    main()
