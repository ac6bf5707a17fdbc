from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "SeekerChat"
    # Application settings
    PORT: int = 8000
    HOST: str = "127.0.0.1"
    VERSION: str = "1.0.0"

    # SSL settings
    SSL_KEY: str | None = None
    SSL_CERT: str | None = None

    # SQLAlchemy database URL (users table)
    DATABASE_URL: str = "sqlite:///./seekerchat.db"

    # Session credential configuration
    ENCODE_KEY: str | None = None
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 60 * 60 * 24 * 7 # 7 days
    JWT_ISSUER: str = "supabase"
    JWT_AUDIENCE: str = "authenticated"

    # Sign-In With Solana challenge
    SIWS_DOMAIN: str = "seekerchat.app"
    SIWS_STATEMENT: str = "Sign in to SeekerChat"

    # Solana RPC (DAS-compatible, e.g. Helius)
    SOLANA_RPC_URL: str = "https://mainnet.helius-rpc.com/?api-key=YOUR_KEY"
    SOLANA_RPC_TIMEOUT: float = 10.0

    # Genesis Token identifiers
    SAGA_GENESIS_COLLECTION: str = "46pcSL5gmjBrPqGKFaLbbCmR6iVuLJbnQy13hAe7s6CC"
    SEEKER_MINT_AUTHORITY: str = "GT2zuHVaZQYZSyQMgJPLzvkmyztfyXg2NJunqFp4p3A4"
    TOKEN_2022_PROGRAM_ID: str = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
    GENESIS_CACHE_TTL_SECONDS: int = 60 * 60 # re-verify every hour

    # Redis settings
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_MAX_CONNECTIONS: int | None = None
    REDIS_SSL: bool = False
    # Memory cache settings
    MEMORY_CACHE_MAX_SIZE: int = 64 * 1024 * 1024  # 64MB in bytes
    REDIS_RECHECK_INTERVAL: int = 30 * 60  # 30 minutes in seconds

    # Debug settings
    DEBUG: bool = False

    class Config:
        env_file = ".env"

# Instantiate the settings
settings = Settings()
