"""Root conftest — shared test configuration."""

import os

# Ensure tests never talk to a real database or the real postal-code service
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("VIACEP_BASE_URL", "http://viacep.test/ws")
os.environ.setdefault("LOG_FORMAT", "text")
