"""Re-apply place updates that failed during an enrichment run."""

import json
import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from curator.core.config import get_settings  # noqa: E402
from curator.vendors import catalog  # noqa: E402

logger = logging.getLogger("replay_failed")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    settings = get_settings()
    folder = Path(settings.failed_updates_dir)

    if not folder.is_dir():
        logger.info("No failed folder: %s", folder)
        raise SystemExit(0)

    for path in sorted(folder.glob("failed-*.json")):
        try:
            with path.open("r", encoding="utf-8") as fh:
                saved = json.load(fh)
            catalog.update_place(settings.catalog_api_url, int(saved["id"]), saved["payload"])
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to replay %s: %s", path.name, exc)
            continue
        logger.info("Replayed %s => place %s", path.name, saved["id"])
        os.remove(path)


if __name__ == "__main__":
    main()
