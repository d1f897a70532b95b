import sys
import traceback

import uvicorn


def _unhandled_exception(exc_type, exc_value, exc_tb):
    """Log unhandled exceptions before the process exits."""
    if exc_type is KeyboardInterrupt:
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return
    msg = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    print("Unhandled exception:\n" + msg, file=sys.stderr, flush=True)
    sys.__excepthook__(exc_type, exc_value, exc_tb)


def main() -> None:
    """
    Entry point for the FinTrack auth bridge.

    Runs a single worker: the user store assumes one writer per process.
    """
    from fintrack.utils.config import load_settings
    from fintrack.utils.exceptions import ConfigError
    from fintrack.utils.logger import setup_logger
    from web.app import create_app

    sys.excepthook = _unhandled_exception

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logger(level=settings.logging.level, fmt=settings.logging.format)

    print(f"Starting FinTrack auth on http://{settings.web.host}:{settings.web.port}")
    print(f"Data directory: {settings.storage.data_dir.resolve()}")

    try:
        uvicorn.run(
            create_app(settings),
            host=settings.web.host,
            port=settings.web.port,
            workers=1,
            log_level=settings.logging.level.lower(),
        )
    except KeyboardInterrupt:
        print("\n\nShutdown complete.")
        sys.exit(0)


if __name__ == "__main__":
    main()
