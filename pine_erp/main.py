"""ASGI entrypoint: ``uvicorn pine_erp.main:app``."""

import uvicorn

from pine_erp.core.app_factory import create_app
from pine_erp.core.config import settings

app = create_app()


def run() -> None:
    uvicorn.run(
        "pine_erp.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app.debug,
        log_config=None,
    )


if __name__ == "__main__":
    run()
