import logging

import uvicorn

import config
from utils.logging_config import setup_logging

# Initialize centralized logging configuration before the app is imported
setup_logging()

from app import app

if __name__ == '__main__':
    logging.info(f"Starting storefront API on {config.WEBAPP_HOST}:{config.WEBAPP_PORT}")
    uvicorn.run(app, host=config.WEBAPP_HOST, port=config.WEBAPP_PORT, log_config=None)
