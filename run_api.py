"""Run the Switchboard API server."""

import logging

import uvicorn

from switchboard.api.config import Settings

if __name__ == "__main__":
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "switchboard.api:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
