"""
Single place for tracker configuration.
Constants are fixed game rules; the rest can be overridden through environment variables.
"""
import os

# Investigators that can be attached to one game
MAX_INVESTIGATORS_PER_GAME = 2
# Action pips per investigator turn
MAX_ACTIONS = 4
# Resources have no game limit; this keeps them inside a 32-bit Integer column
MAX_RESOURCES = 2**31 - 1
# Largest single stat change accepted from a client
MAX_STAT_DELTA = 1_000_000

GAME_NAME_MAX_LENGTH = 128
SCENARIO_MAX_LENGTH = 120

# Public ArkhamDB card dump, used only by the catalog seeding script
ARKHAMDB_CARDS_URL = os.environ.get(
    "ARKHAMDB_CARDS_URL", "https://arkhamdb.com/api/public/cards/?_format=json"
)
CATALOG_FETCH_TIMEOUT = int(os.environ.get("CATALOG_FETCH_TIMEOUT", "30"))

# Comma-separated list of frontend origins
CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get(
        "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if o.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
