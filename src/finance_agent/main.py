"""Entrypoint: run the finance agent server."""

import uvicorn

from finance_agent.api.app import create_app
from finance_agent.config.settings import Settings


def main() -> None:
    settings = Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
