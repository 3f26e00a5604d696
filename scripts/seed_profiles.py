#!/usr/bin/env python3
"""Seed completed demo profiles into Neo4j for local discovery testing.

Creates the Connection and Profile constraints, then upserts N profiles
(default 20). Run from repo root with .env (NEO4J_URI, NEO4J_USER,
NEO4J_PASSWORD). Idempotent: re-running updates the same profile ids.
"""
import argparse
import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT / "src"))

from dotenv import load_dotenv  # noqa: E402
from neo4j import GraphDatabase  # noqa: E402

from cofound.domain import Profile  # noqa: E402
from cofound.infrastructure import (  # noqa: E402
    Neo4jProfileDirectory,
    ensure_connection_constraints,
    ensure_profile_constraints,
)

load_dotenv(REPO_ROOT / ".env")

_CITIES = ("Berlin", "Lisbon", "Austin", "Bogota", "Nairobi")
_INTERESTS = ("fintech", "climate", "health", "devtools", "edtech", "ai")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("-n", "--count", type=int, default=20)
    args = parser.parse_args()

    uri = os.environ.get("NEO4J_URI", "bolt://localhost:7687").strip()
    user = os.environ.get("NEO4J_USER", "neo4j").strip()
    password = os.environ.get("NEO4J_PASSWORD", "password").strip()
    driver = GraphDatabase.driver(uri, auth=(user, password))
    try:
        ensure_connection_constraints(driver)
        ensure_profile_constraints(driver)
        directory = Neo4jProfileDirectory(driver)
        for i in range(1, args.count + 1):
            directory.add(
                Profile(
                    id=f"demo-{i:03d}",
                    name=f"Demo Founder {i}",
                    age=24 + i % 20,
                    city=_CITIES[i % len(_CITIES)],
                    looking_for="Technical co-founder" if i % 2 else "Business co-founder",
                    interests={_INTERESTS[i % len(_INTERESTS)], _INTERESTS[(i * 3) % len(_INTERESTS)]},
                    startup_name=f"Demo Startup {i}",
                    profile_completed=True,
                )
            )
        print(f"Seeded {args.count} profiles.")
    finally:
        driver.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
