"""Entry point for standalone backend process."""

import uvicorn

from pak_invalidator.config import settings
from pak_invalidator.main import app


def main() -> None:
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
