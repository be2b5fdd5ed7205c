from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
	# App
	APP_NAME: str = "Field Readings API"
	APP_VERSION: str = "1.0.0"
	API_PREFIX: str = "/api/field"
	DEBUG: bool = False
	ENVIRONMENT: str = "development" # development, staging, production
	LOG_LEVEL: str = "INFO"

	# Database
	DATABASE_URL: str
	DB_POOL_SIZE: int = 10
	DB_MAX_OVERFLOW: int = 20
	DB_POOL_PRE_PING: bool = True
	DB_ECHO: bool = False
	AUTO_CREATE_TABLES: bool = False

	# Session cookie
	JWT_SECRET: str
	JWT_ALGORITHM: str = "HS256"
	SESSION_COOKIE_NAME: str = "fieldSessionId"
	SESSION_EXPIRATION_HOURS: int = 12

	# CORS
	CORS_ORIGINS: List[str] = ["http://localhost:3000"]
	ALLOWED_HOSTS: List[str] = ["*"]

	# Monitoring
	EXPOSE_METRICS: bool = True
	SLOW_REQUEST_SECONDS: float = 1.0

	# Meters
	DEFAULT_SORT_ORDER: int = 999

	model_config = SettingsConfigDict(
		env_file=".env",
		env_file_encoding="utf-8",
		case_sensitive=True
	)


@lru_cache()
def get_settings() -> Settings:
	return Settings()


settings = get_settings()
