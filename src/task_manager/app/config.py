# task_manager/app/config.py
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    def __init__(self) -> None:
        self.PROJECT_NAME = os.getenv("TASKS_PROJECT_NAME", "task_manager")
        # путь к снапшоту один на весь процесс
        self.TASKS_FILE = os.getenv("TASKS_FILE", "tasks.csv")
        self.SEED_DEFAULTS = _env_flag("TASKS_SEED_DEFAULTS", "true")
        self.DEBUG = _env_flag("TASKS_DEBUG", "false")

        self.HOST = os.getenv("TASKS_HOST", "0.0.0.0")
        self.PORT = int(os.getenv("TASKS_PORT", "8000"))

        # пусто -> audit выключен
        self.AUDIT_URL: Optional[str] = os.getenv("AUDIT_URL") or None


settings = Settings()
