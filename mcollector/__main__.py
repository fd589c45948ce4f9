"""Run the metrics server with uvicorn."""

import uvicorn

from mcollector.config import get_settings
from mcollector.main import create_app


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
