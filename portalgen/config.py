import os
from dotenv import load_dotenv

load_dotenv()

# --------------------------------------------------
# App
# --------------------------------------------------
APP_NAME = "CV Portal Generation API"
API_PREFIX = "/v1"
PORTAL_GENERATOR_VERSION = "1.0.0"

ENV = os.getenv("ENV", "local")  # local | production
IS_PROD = ENV == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --------------------------------------------------
# Feature Flags
# --------------------------------------------------
USE_CELERY = os.getenv("USE_CELERY", "false").lower() == "true"

# External generation / deployment services are simulated unless disabled
SIMULATE_EXTERNAL = os.getenv("SIMULATE_EXTERNAL", "true").lower() == "true"
SIMULATED_STEP_DELAY_MS = int(os.getenv("SIMULATED_STEP_DELAY_MS", "0"))

# Whole-pipeline wall clock budget; overrun is reported as a warning
PIPELINE_BUDGET_SECONDS = int(os.getenv("PIPELINE_BUDGET_SECONDS", "300"))

# --------------------------------------------------
# Document stores
# --------------------------------------------------
STORE_BACKEND = os.getenv(
    "STORE_BACKEND", "firestore" if IS_PROD else "memory"
).lower()  # firestore | redis | memory

if STORE_BACKEND not in ("firestore", "redis", "memory"):
    raise RuntimeError(f"Unsupported STORE_BACKEND: {STORE_BACKEND}")

JOBS_COLLECTION = os.getenv("JOBS_COLLECTION", "jobs")
PORTALS_COLLECTION = os.getenv("PORTALS_COLLECTION", "portals")

# --------------------------------------------------
# Firestore
# --------------------------------------------------
FIRESTORE_PROJECT = os.getenv("FIRESTORE_PROJECT")

if IS_PROD and STORE_BACKEND == "firestore" and not FIRESTORE_PROJECT:
    raise RuntimeError("FIRESTORE_PROJECT is required in production")

# --------------------------------------------------
# Redis / Celery
# --------------------------------------------------
REDIS_URL = os.getenv("REDIS_URL")
REDIS_PREFIX = os.getenv("REDIS_PREFIX", "portalgen:")
CELERY_QUEUE = os.getenv("CELERY_QUEUE", "portal_queue")

# Documents live for 30 days unless touched again
DOC_TTL_SECONDS = int(os.getenv("DOC_TTL_SECONDS", 60 * 60 * 24 * 30))

if (USE_CELERY or STORE_BACKEND == "redis") and not REDIS_URL:
    raise RuntimeError("REDIS_URL is required when USE_CELERY=true or STORE_BACKEND=redis")

# --------------------------------------------------
# OpenAI / Pinecone / HuggingFace (real external services only)
# --------------------------------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
DESIGN_MODEL = os.getenv("DESIGN_MODEL", "gpt-4o-mini")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

PINECONE_API_KEY = os.getenv("PINECONE_API_KEY")
PINECONE_HOST = os.getenv("PINECONE_HOST")

HUGGINGFACE_API_TOKEN = os.getenv("HUGGINGFACE_API_TOKEN")
HUGGINGFACE_NAMESPACE = os.getenv("HUGGINGFACE_NAMESPACE")
HUGGINGFACE_API_URL = os.getenv("HUGGINGFACE_API_URL", "https://huggingface.co/api")

if not SIMULATE_EXTERNAL:
    if not OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is required when SIMULATE_EXTERNAL=false")
    if not PINECONE_API_KEY or not PINECONE_HOST:
        raise RuntimeError("PINECONE_API_KEY and PINECONE_HOST are required when SIMULATE_EXTERNAL=false")
    if not HUGGINGFACE_API_TOKEN or not HUGGINGFACE_NAMESPACE:
        raise RuntimeError(
            "HUGGINGFACE_API_TOKEN and HUGGINGFACE_NAMESPACE are required when SIMULATE_EXTERNAL=false"
        )
