import os
import logging
import logging.config
from contextvars import ContextVar
from pathlib import Path

# Base Paths
APP_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = APP_DIR.parent

# Logging Setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(request_id)s] %(name)s - %(message)s"
LOG_FILE_PATH = os.getenv(
    "LOG_FILE_PATH",
    str((PROJECT_ROOT / "logs" / "clipsforge.log").resolve()),
)

LOG_DIR = Path(LOG_FILE_PATH).parent
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Set by RequestIDMiddleware; "-" outside a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIDFilter(logging.Filter):
    """Stamps every record with the ID of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": RequestIDFilter},
    },
    "formatters": {
        "standard": {
            "format": LOG_FORMAT,
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": LOG_LEVEL,
            "formatter": "standard",
            "filters": ["request_id"],
            "stream": "ext://sys.stdout",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "level": LOG_LEVEL,
            "formatter": "standard",
            "filters": ["request_id"],
            "filename": LOG_FILE_PATH,
            "maxBytes": 10 * 1024 * 1024,  # 10 MB
            "backupCount": 5,
            "encoding": "utf8",
        },
    },
    "loggers": {
        "clipsforge": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"level": "INFO"},
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
}

logging.config.dictConfig(LOGGING_CONFIG)
logger = logging.getLogger("clipsforge")


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# Cloudflare R2 (transcript / analysis archive)
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID", "")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID", "")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY", "")
R2_ENDPOINT_URL = os.getenv(
    "R2_ENDPOINT_URL",
    f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com" if R2_ACCOUNT_ID else "",
)

# Cloudinary (media hosting)
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
CLOUDINARY_UPLOAD_PRESET = os.getenv("CLOUDINARY_UPLOAD_PRESET", "")

# Hugging Face (Whisper transcription)
HUGGINGFACE_API_KEY = os.getenv("HUGGINGFACE_API_KEY", "")
WHISPER_MODEL_URL = os.getenv(
    "WHISPER_MODEL_URL",
    "https://api-inference.huggingface.co/models/openai/whisper-large-v3",
)

# Groq (content analysis) with Gemini as fallback
GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
GROQ_API_URL = os.getenv("GROQ_API_URL", "https://api.groq.com/openai/v1/chat/completions")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")

# Shotstack (clip rendering)
SHOTSTACK_API_KEY = os.getenv("SHOTSTACK_API_KEY", "")
SHOTSTACK_ENVIRONMENT = os.getenv("SHOTSTACK_ENVIRONMENT", "stage")

# Ayrshare (social publishing)
AYRSHARE_API_KEY = os.getenv("AYRSHARE_API_KEY", "")
AYRSHARE_API_URL = os.getenv("AYRSHARE_API_URL", "https://app.ayrshare.com/api")
AYRSHARE_DOMAIN = os.getenv("AYRSHARE_DOMAIN", "")
AYRSHARE_PRIVATE_KEY = os.getenv("AYRSHARE_PRIVATE_KEY", "")
AYRSHARE_REDIRECT_URL = os.getenv("AYRSHARE_REDIRECT_URL", "")

# Outbound HTTP
VENDOR_TIMEOUT_SECONDS = float(os.getenv("VENDOR_TIMEOUT_SECONDS", "60"))

# Transcription cache
TRANSCRIPTION_CACHE_TTL = int(os.getenv("TRANSCRIPTION_CACHE_TTL", str(24 * 3600)))

# Security / domains
ALLOWED_HOSTS = _split_csv(
    os.getenv(
        "ALLOWED_HOSTS",
        "localhost,127.0.0.1,testserver,clipsforge.app,www.clipsforge.app",
    )
)

CORS_ORIGINS = _split_csv(
    os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:8000,https://clipsforge.app",
    )
)

# -----------------------------------------------------------------------------
# Security Configuration
# -----------------------------------------------------------------------------

# Rate limiting
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "60"))  # requests per window
RATE_LIMIT_WINDOW = int(os.getenv("RATE_LIMIT_WINDOW", "60"))  # seconds
WS_RATE_LIMIT_CONNECTIONS = int(os.getenv("WS_RATE_LIMIT_CONNECTIONS", "10"))  # connections per window
WS_RATE_LIMIT_WINDOW = int(os.getenv("WS_RATE_LIMIT_WINDOW", "60"))  # seconds

# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"
DEBUG = not IS_PRODUCTION

# -----------------------------------------------------------------------------
# Pipeline progress milestones (percent)
# -----------------------------------------------------------------------------

PROGRESS_INITIAL = 5
PROGRESS_TRANSCRIBED = 35
PROGRESS_ANALYZED = 65
PROGRESS_COMPLETE = 100
