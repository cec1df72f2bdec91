"""ChefGPT Service entry point.

Serves the FastAPI application (chefgpt/api/app.py) with uvicorn:
- POST /chat, /image-caption, /recipe-lookup
- GET /health
- Interactive API docs at /docs

Run with: python app.py
"""

import uvicorn

from chefgpt.api.app import app
from chefgpt.utils.config import config
from chefgpt.utils.logger import logger


if __name__ == "__main__":
    logger.info(f"Starting ChefGPT Service on port {config.PORT}")
    logger.info(f"Vision provider: {config.VISION_PROVIDER}")
    logger.info(f"Default persona: {config.DEFAULT_PERSONA}")
    logger.info(f"API docs available at: http://localhost:{config.PORT}/docs")

    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level="warning")
