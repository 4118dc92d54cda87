"""Example: call the staffing engine directly (no Flask).

Controllers are thin; the rules live in the engine and its services.
"""

import importlib
import sys

from config import get_settings_module

from src.staffing_engine.staffing_engine.container import build_container


def main(shift_id: int = 1):
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    engine = container.engine

    result = engine.compute_fulfillment(shift_id)
    for role in result.roles:
        f = role.fulfillment
        print(f"{role.role_code:<4} {f.assigned}/{f.required} {f.band.value}")
    print(f"overall {result.overall.assigned}/{result.overall.required} {result.overall.band.value}")

    needed, total = engine.workers_needed(shift_id)
    for n in needed:
        print(f"need {n.needed} x {n.role_name}")
    print(f"total needed: {total}")


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 1)
