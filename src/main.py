"""Main application entry point."""

import logging
import os

import uvicorn
from dotenv import load_dotenv

from src.api.app import app
from src.models import Base
from src.services import get_engine
from src.services.config import get_ledger_config
from src.services.logging import setup_server_logging

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def main() -> None:
    """Create tables if needed and serve the API."""
    config = get_ledger_config()
    setup_server_logging(config.log_file)

    Base.metadata.create_all(get_engine())
    logger.info("Database ready at %s", config.database_url)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info("Starting installment ledger API on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
