"""Settings read from the environment (.env at repo root or cwd is loaded first)."""

import os
from pathlib import Path

from dotenv import load_dotenv

for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break


class Settings:
    # -------------------------------------------------------
    # Project
    # -------------------------------------------------------
    PROJECT_NAME: str = "Cofound API"

    # -------------------------------------------------------
    # Store backend: "neo4j" or "memory"
    # -------------------------------------------------------
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "neo4j").strip().lower()

    NEO4J_URI: str = os.getenv("NEO4J_URI", "bolt://localhost:7687").strip()
    NEO4J_USER: str = os.getenv("NEO4J_USER", "neo4j").strip()
    NEO4J_PASSWORD: str = os.getenv("NEO4J_PASSWORD", "password").strip()

    # JSON list of profile objects loaded into the memory backend at startup.
    # The memory backend holds no profiles otherwise.
    MEMORY_SEED_FILE: str = os.getenv("MEMORY_SEED_FILE", "").strip()

    # -------------------------------------------------------
    # Discovery deck page size
    # -------------------------------------------------------
    DISCOVERY_DEFAULT_LIMIT: int = int(os.getenv("DISCOVERY_DEFAULT_LIMIT", 10))
    DISCOVERY_MAX_LIMIT: int = int(os.getenv("DISCOVERY_MAX_LIMIT", 30))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
