from __future__ import annotations

import logging

from venstore.application.container import build_container
from venstore.config import get_app_paths, load_settings
from venstore.logging_config import setup_logging
from venstore.ui.app import App

log = logging.getLogger(__name__)


def main() -> None:
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO)

    settings = load_settings()
    container = build_container(paths.db_path, settings)
    log.info("app_started db=%s schema_version=%s", paths.db_path, container.repo.schema_version())

    app = App(
        container,
        db_path=str(paths.db_path),
        logs_dir=str(paths.logs_dir),
        exports_dir=str(paths.exports_dir),
    )
    app.mainloop()


if __name__ == "__main__":
    main()
