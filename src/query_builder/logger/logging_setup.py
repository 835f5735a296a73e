import os
import yaml
import logging
import logging.config
from pathlib import Path

DEFAULT_CONFIG_PATH = Path(__file__).with_name("logging_config.yaml")


def resolve_log_dir() -> Path:
    """Resolve the directory used for log files.

    Prefers `QB_LOG_DIR`, falling back to ``./logs``.
    """

    raw = os.getenv("QB_LOG_DIR")
    if raw:
        return Path(raw).expanduser().resolve()
    return Path("logs").resolve()


def setup_logging(
    default_path=DEFAULT_CONFIG_PATH,
    default_level=logging.INFO,
    env_key="QB_LOG_CFG",
):
    """
    Load logging configuration from YAML file, falling back to basicConfig.
    """
    path = os.getenv(env_key, str(default_path))
    if os.path.exists(path):
        with open(path, "rt", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        log_dir = resolve_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers = config.get("handlers", {})
        file_handler = handlers.get("file")
        if file_handler and "filename" in file_handler:
            filename = Path(file_handler["filename"]).name
            file_handler["filename"] = str(log_dir / filename)

        logging.config.dictConfig(config)
    else:
        logging.basicConfig(level=default_level)
