import os
import sys
from dotenv import load_dotenv

load_dotenv()

# Detect environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()
IS_PRODUCTION = ENVIRONMENT == "production"

# API Configuration
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
API_WORKERS = int(os.getenv("API_WORKERS", "4"))

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///taskboard.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

# Task table
TASK_TABLE = os.getenv("TASK_TABLE", "items")

# Owner-column layout: auto (detect from the live table), legacy or current
SCHEMA_LAYOUT = os.getenv("SCHEMA_LAYOUT", "auto").strip().lower()
SCHEMA_LAYOUT_CHOICES = ("auto", "legacy", "current")

# Create the task table on startup when it is missing (development only)
PROVISION_LAYOUT = os.getenv("PROVISION_LAYOUT", "").strip().lower()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

if SCHEMA_LAYOUT not in SCHEMA_LAYOUT_CHOICES:
    print("=" * 70)
    print("CRITICAL ERROR: SCHEMA_LAYOUT has an unknown value!")
    print("=" * 70)
    print(f"\nCurrent value: {SCHEMA_LAYOUT}")
    print(f"Allowed values: {', '.join(SCHEMA_LAYOUT_CHOICES)}")
    print("\nUse 'auto' unless the task table has been migrated to a single layout.")
    print("\n" + "=" * 70)
    sys.exit(1)

if PROVISION_LAYOUT and PROVISION_LAYOUT not in ("legacy", "current"):
    print("=" * 70)
    print("CRITICAL ERROR: PROVISION_LAYOUT must be 'legacy' or 'current'!")
    print("=" * 70)
    sys.exit(1)

if PROVISION_LAYOUT and IS_PRODUCTION:
    print("=" * 70)
    print("CRITICAL ERROR: PROVISION_LAYOUT is not allowed in production!")
    print("=" * 70)
    print("\nProvision the task table through your migration tooling instead.")
    print("\n" + "=" * 70)
    sys.exit(1)

# CORS Configuration with validation
ALLOWED_ORIGINS_STR = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000"
)
ALLOWED_ORIGINS = [origin.strip() for origin in ALLOWED_ORIGINS_STR.split(",") if origin.strip()]

if "*" in ALLOWED_ORIGINS:
    if IS_PRODUCTION:
        print("=" * 70)
        print("CRITICAL ERROR: Wildcard CORS (*) not allowed in production!")
        print("=" * 70)
        print("\nCurrent ALLOWED_ORIGINS contains wildcard '*'")
        print("\nSet specific origins in your .env file:")
        print("  ALLOWED_ORIGINS=https://yourdomain.com,https://app.yourdomain.com")
        print("\n" + "=" * 70)
        sys.exit(1)
    else:
        print("\n⚠️  WARNING: Wildcard CORS (*) detected in development mode")
        print("   This should NOT be used in production!\n")
