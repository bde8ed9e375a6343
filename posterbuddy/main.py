"""Entry: start the API server (rotation and sync run inside the app lifespan)."""
import logging

import uvicorn

from posterbuddy.config import load_config

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    config = load_config()
    uvicorn.run(
        "posterbuddy.api.app:app",
        host=config.api_host,
        port=config.api_port,
        reload=True,
    )
