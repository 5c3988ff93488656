# src/pets_ui_bff/__main__.py

import logging

import uvicorn

from .config import settings
from .main import create_app


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger(__name__).info(
        "--- PetsUI-BFF starting on %s:%s, upstream API %s ---",
        settings.HOST, settings.PORT, settings.API_BASE_URL,
    )
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
