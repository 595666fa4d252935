"""Environment driven settings, optionally read from a local ``.env`` file."""

import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Dossier des plans enregistrés (un fichier JSON par plan)
    DATA_DIR: str = os.getenv("BUSINESSPLAN_DATA_DIR", os.path.join("data", "plans"))

    LOG_LEVEL: str = os.getenv("BUSINESSPLAN_LOG_LEVEL", "INFO").upper()

    APP_TITLE: str = os.getenv("BUSINESSPLAN_APP_TITLE", "Business Plan CCI")


settings = Settings()
