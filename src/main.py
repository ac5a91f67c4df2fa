"""Entrypoint: `python -m src.main` or `uvicorn src.main:app`"""

import os

import uvicorn

from src.api.app import create_app
from src.core.config import Settings
from src.core.logging_config import setup_logging

settings = Settings.from_env()
setup_logging(settings.log_level, settings.log_format)
app = create_app(settings)


def main() -> None:
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))


if __name__ == "__main__":
    main()
