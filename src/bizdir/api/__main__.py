"""
bizdir.api.__main__

`python -m bizdir.api` / `bizdir-api`: serve the directory API with uvicorn.
"""

from __future__ import annotations

import uvicorn

from bizdir.api.app import create_app
from bizdir.settings import DEFAULT_JWT_SECRET, get_settings


def main() -> None:
    settings = get_settings()
    if settings.env == "prod" and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise SystemExit("BIZDIR_JWT_SECRET must be set when BIZDIR_ENV=prod")

    # log_config=None keeps uvicorn on the structlog setup from create_app.
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
