"""Development server entrypoint."""
from __future__ import annotations

from .app import create_app
from .config import configure_logging, get_settings


def run() -> None:
    """Convenience wrapper used by ``python -m storage_logger.main``."""

    settings = get_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    app.run(
        host="0.0.0.0",
        port=8000,
        debug=settings.environment == "development",
    )


if __name__ == "__main__":
    run()
