"""Process-level configuration for the API server."""
import os
from dotenv import load_dotenv

load_dotenv()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
API_NAME = "Flare Validator API"
