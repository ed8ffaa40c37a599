import os
import sys
import uvicorn
import logging
import fcntl
from pathlib import Path
from dotenv import load_dotenv

# Configure logging to write to both stderr and a file immediately.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr),
        logging.FileHandler("api_server.log", mode="a")
    ]
)
logger = logging.getLogger("api_server")


def _load_local_env() -> None:
    """Load BINANCE_* credentials and DB settings from config/secrets.env (if present)."""
    env_path = Path(__file__).resolve().parent / "config" / "secrets.env"
    if env_path.exists():
        load_dotenv(env_path)
        logger.info(f"Loaded environment variables from {env_path}")


def main() -> None:
    _load_local_env()

    # Imported after the env is loaded so config overrides see the secrets file.
    from stocknotifier.utils.config_loader import load_config

    api_cfg = load_config().get("api") or {}
    host = str(api_cfg.get("host", "127.0.0.1"))
    port = int(api_cfg.get("port", 8000))

    # Single instance only: two processes would each keep their own Binance clock offset
    # and exchange info cache, and race on the SQLite file.
    lock_path = Path(".api_server.lock")
    try:
        lock_f = lock_path.open("w")
        fcntl.flock(lock_f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        lock_f.write(str(os.getpid()))
        lock_f.flush()
    except OSError:
        logger.error("Another API instance appears to be running (lockfile busy). Exiting.")
        sys.exit(1)

    try:
        logger.info(f"Starting StockNotifier API server on {host}:{port}")
        uvicorn.run(
            "stocknotifier.api.app:app",
            host=host,
            port=port,
            reload=False,
            log_level="info",
            workers=1,
        )
    except Exception as e:
        logger.error(f"Fatal error in API server: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
