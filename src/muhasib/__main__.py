from __future__ import annotations

import logging
import os
from pathlib import Path

from .tui.app import MuhasibApp


def _configure_logging() -> None:
    log_dir = Path.home() / ".cache" / "muhasib"
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=log_dir / "muhasib.log",
        level=os.environ.get("MUHASIB_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    _configure_logging()
    MuhasibApp().run()


if __name__ == "__main__":  # pragma: no cover
    main()
