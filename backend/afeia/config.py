# backend configuration
# loads env vars for mongodb, jwt, cors and the morning review thresholds

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "afeia_db")

    # jwt auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "afeia-dev-secret-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # morning review
    REVIEW_SESSION_THRESHOLD: int = 60
    ATTENTION_QUEUE_THRESHOLD: int = 40
    ATTENTION_QUEUE_LIMIT: int = 8
    CASELOAD_LOOKBACK_DAYS: int = 30
    REVIEW_SESSION_TTL_MINUTES: int = 120

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
