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
from src.staffing_engine.staffing_engine.database.bootstrap import apply_seed_sql


def main() -> None:
    setup_plain_logging()
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    logging.getLogger("staffing_engine.scripts").info(
        "seed_ready",
        extra={"target": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"},
    )


if __name__ == "__main__":
    main()
