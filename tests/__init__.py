"""Test package. Settings are read at import time, so test defaults are set before any app import."""

import os

os.environ.setdefault("JWT_SECRET", "test-signing-key-0123456789abcdef0123456789")
os.environ.setdefault("BOOTSTRAP_ENABLED", "false")
os.environ.setdefault("APP_ENV", "dev")
