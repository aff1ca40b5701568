"""Run the trajectwatch server.

Run with:
    python -m trajectwatch

Configuration comes from TRAJECTWATCH_* environment variables (or .env);
TRAJECTWATCH_API_KEY is required.
"""

import uvicorn

from trajectwatch.app import create_app
from trajectwatch.config import Settings, configure_logging


def main() -> None:
    settings = Settings()
    configure_logging(settings.LOG_LEVEL)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
