"""Run the Flare Validator API server."""
import uvicorn

from backend.config import HOST, LOG_FORMAT, LOG_LEVEL, PORT
from flare_validators.logging_setup import configure_logging

if __name__ == "__main__":
    configure_logging(LOG_FORMAT, LOG_LEVEL)
    uvicorn.run("backend.main:app", host=HOST, port=PORT, log_config=None)
