from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "IsYourDayOk"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    APP_URL: str = "https://isyourdayok.com"  # Base URL for NFT metadata

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Security Settings
    JWT_SECRET_KEY: str = "your-secret-key"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    TOKEN_BLACKLIST_EXPIRE_MARGIN_MINUTES: int = 5

    # Rate Limiting (requests per minute)
    RATE_LIMIT_AUTH_CHALLENGE: int = 5
    RATE_LIMIT_AUTH_VERIFY: int = 3
    RATE_LIMIT_AUTH_REFRESH: int = 10
    RATE_LIMIT_MINT: int = 3
    RATE_LIMIT_DEFAULT: int = 60

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",  # Frontend development
        "https://isyourdayok.com",  # Production frontend
    ]

    # Redis Settings
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10

    # Challenge Settings
    CHALLENGE_EXPIRY_SECONDS: int = 300  # 5 minutes

    # PostgreSQL Settings
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "isyourdayok"
    POSTGRES_MIN_POOL_SIZE: int = 5
    POSTGRES_MAX_POOL_SIZE: int = 20
    DB_LOGGING_ENABLED: bool = False

    # Chain Settings (Base Sepolia by default)
    CHAIN_ID: int = 84532
    RPC_URL: str = "https://sepolia.base.org"
    NFT_CONTRACT_ADDRESS: Optional[str] = None
    POINTS_CONTRACT_ADDRESS: Optional[str] = None
    MINTER_PRIVATE_KEY: Optional[str] = None  # Signs mintAchievement transactions
    TX_RECEIPT_TIMEOUT_SECONDS: int = 120
    MINT_LOCK_TTL_SECONDS: int = 180

    # Access control
    ADMIN_WALLET_ADDRESSES: List[str] = []  # Seeded into role_assignments on startup

    # Chat
    CHAT_DEFAULT_LIMIT: int = 50
    CHAT_MAX_LIMIT: int = 200

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
