import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    CRON_ENABLED: bool = os.getenv("CRON_ENABLED", "1") not in ("0", "false", "False", "")
    RUNTIME_DIR: str = os.getenv("RUNTIME_DIR", "./data/cron")
    TASKS_CALLBACK: str = os.getenv("TASKS_CALLBACK", "")
    HASH_FUNC: str = os.getenv("HASH_FUNC", "sha1")
    TIMEZONE: str = os.getenv("TIMEZONE", "")
    CONSOLE_COMMAND: str = os.getenv("CONSOLE_COMMAND", "")
    WRAPPER_COMMAND: str = os.getenv("WRAPPER_COMMAND", "")
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))
    ROOT_PATH: str = os.getenv("ROOT_PATH", "")
    SCHEDULER_ENABLED: bool = os.getenv("SCHEDULER_ENABLED", "0") in ("1", "true", "True")
    LOG_DIR: str = os.getenv("LOG_DIR", "./data/logs")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_MAX_BYTES: int = int(os.getenv("LOG_MAX_BYTES", "10485760"))
    LOG_BACKUP_COUNT: int = int(os.getenv("LOG_BACKUP_COUNT", "5"))
    APP_LOG_NAME: str = os.getenv("APP_LOG_NAME", "cron.log")

settings = Settings()
