import os, json, logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SERVER_CFG_PATHS = [
    Path(os.getenv("CSVVIEW_SERVER_CONFIG", "")) if os.getenv("CSVVIEW_SERVER_CONFIG") else None,
    Path.home() / ".csvview_server.json",
    Path.cwd() / ".csvview_server.json",
]
SERVER_CFG_PATHS = [p for p in SERVER_CFG_PATHS if p is not None]

TRUTHY = {"1", "true", "True", "yes", "on"}


def _read_cfg_file() -> dict:
    for p in SERVER_CFG_PATHS:
        try:
            if p.exists():
                with open(p, "r") as f:
                    return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable server config %s: %s", p, e)
            continue
    return {}


def _write_cfg_file(data: dict) -> None:
    if os.getenv("CSVVIEW_SERVER_CONFIG"):
        target = Path(os.getenv("CSVVIEW_SERVER_CONFIG"))
    else:
        target = Path.home() / ".csvview_server.json"
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        logger.warning("Could not write server config %s: %s", target, e)


class Config:
    DB_URI: str = "sqlite:///csvview.db"
    UPLOAD_DIR: str = str(Path.cwd() / "uploads")
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    MAX_CONTENT_LENGTH: int = int(os.getenv("CSVVIEW_MAX_UPLOAD_BYTES", str(500 * 1024 * 1024)))

    @classmethod
    def load(cls, cli_db_uri: Optional[str] = None, cli_upload_dir: Optional[str] = None):
        """Merge CLI values, environment and the server config file, in that order."""
        cfg = _read_cfg_file()
        db_uri = cli_db_uri or os.getenv("CSVVIEW_DB_URI") or cfg.get("db_uri") or cls.DB_URI
        upload_dir = cli_upload_dir or os.getenv("CSVVIEW_UPLOAD_DIR") or cfg.get("upload_dir") or cls.UPLOAD_DIR
        debug_env = os.getenv("CSVVIEW_DEBUG", "0")
        debug_file = cfg.get("debug", False)
        debug = (debug_env in TRUTHY) or bool(debug_file)
        log_level = (os.getenv("CSVVIEW_LOG_LEVEL") or cfg.get("log_level") or cls.LOG_LEVEL).upper()
        C = type("C", (), {})()
        C.DB_URI = db_uri
        C.UPLOAD_DIR = upload_dir
        C.DEBUG = debug
        C.LOG_LEVEL = log_level
        C.MAX_CONTENT_LENGTH = cls.MAX_CONTENT_LENGTH
        return C

    @staticmethod
    def persist(db_uri: Optional[str] = None, upload_dir: Optional[str] = None,
                debug: Optional[bool] = None, log_level: Optional[str] = None):
        data = _read_cfg_file()
        if db_uri is not None:
            data["db_uri"] = db_uri
        if upload_dir is not None:
            data["upload_dir"] = upload_dir
        if debug is not None:
            data["debug"] = bool(debug)
        if log_level is not None:
            data["log_level"] = log_level
        _write_cfg_file(data)
