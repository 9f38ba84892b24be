import os

STORE_BACKEND = os.getenv("STORE_BACKEND", "redis")
REDIS_HOST = os.getenv("REDIS_HOST", "redis")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
AUTH_BASE = os.getenv("AUTH_BASE")
AUTH_API_KEY = os.getenv("AUTH_API_KEY")
PUBLIC_DIR = os.getenv("PUBLIC_DIR", os.path.join(os.getcwd(), "public"))
COMPLETED_RETENTION = int(os.getenv("COMPLETED_RETENTION", 50))
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", 50))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOCAL_OWNER = os.getenv("LOCAL_OWNER", "local")
