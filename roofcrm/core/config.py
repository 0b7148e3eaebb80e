import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./roofcrm.db")
SQLALCHEMY_DATABASE_URI = DATABASE_URL

# JWT settings. Tokens are issued by the identity provider in front of the CRM;
# this service only verifies them (and mints them for tests and tooling).
_PLACEHOLDER_SECRET = "change_me_in_the_env_file"
SECRET_KEY: str = os.getenv("SECRET_KEY", _PLACEHOLDER_SECRET)
ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

if SECRET_KEY == _PLACEHOLDER_SECRET:
    # Never log the key itself
    logger.warning("SECRET_KEY is not configured; using the placeholder value.")
