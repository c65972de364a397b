import os

def get_secret(secret_name: str) -> str | None:
    secret_path = f'/run/secrets/{secret_name}'
    try:
        with open(secret_path, 'r', encoding='utf-8') as secret_file:
            return secret_file.read().strip()
    except IOError:
        return os.getenv(secret_name)


DB_PASSWORD = get_secret('db_password')
SECRET_KEY = get_secret('secret_key')

POSTGRES_DB = os.getenv("POSTGRES_DB")
POSTGRES_USER = os.getenv("POSTGRES_USER")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
REDIS_URL = os.getenv("REDIS_URL")

if POSTGRES_USER and DB_PASSWORD and POSTGRES_DB:
    DATABASE_URL = f"postgresql+asyncpg://{POSTGRES_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{POSTGRES_DB}"
else:
    raise ValueError("Can't build DATABASE_URL")

# Upper bounds for a single request transaction; postgres aborts the unit when exceeded
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "10000"))
DB_LOCK_TIMEOUT_MS = int(os.getenv("DB_LOCK_TIMEOUT_MS", "3000"))
DB_IDLE_TX_TIMEOUT_MS = int(os.getenv("DB_IDLE_TX_TIMEOUT_MS", "30000"))

ALGORITHM = "HS256"
JWT_ISSUER = os.getenv("JWT_ISSUER", "identity-api")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "ticketing-web")

TICKET_CODE_PREFIX = os.getenv("TICKET_CODE_PREFIX", "TKT-")
TICKET_CODE_LENGTH = int(os.getenv("TICKET_CODE_LENGTH", "12"))
TICKET_CODE_MAX_ATTEMPTS = int(os.getenv("TICKET_CODE_MAX_ATTEMPTS", "3"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUDIT_STREAM = os.getenv("AUDIT_STREAM", "audit:inventory")
