"""Configuration for the front-desk tool-call core.

Loads settings from environment variables (via a .env file or the system
environment). Every setting has a default so the package can be imported
and tested without any environment configured.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists (it won't exist in CI or Docker — that's fine)
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

# --- FHIR resource API ---
# Versioned base URL of the clinical-records API. Resource paths such as
# "/Patient" or "/Observation" are appended to it.
FHIR_BASE_URL: str = os.getenv(
    "FHIR_BASE_URL",
    "https://fhir.epic.com/interconnect-fhir-oauth/api/FHIR/R4",
)

# Set to "false" for sandboxes with self-signed certificates
FHIR_SSL_VERIFY: bool = os.getenv("FHIR_SSL_VERIFY", "true").lower() != "false"

# --- Token endpoint ---
# A small local service that performs the backend OAuth2 exchange and hands
# back {"access_token": "..."} on GET.
TOKEN_URL: str = os.getenv("TOKEN_URL", "http://localhost:8080/getToken")

# --- HTTP ---
# Seconds before a single HTTP call (token or resource) is abandoned
HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "30"))

# --- Logging ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Sessions (HTTP surface) ---
# Most sessions kept in memory; the least recently used is evicted beyond it
SESSION_MAX_ENTRIES: int = int(os.getenv("SESSION_MAX_ENTRIES", "1000"))

# Seconds a session may sit unused before it is forgotten (0 disables expiry)
SESSION_IDLE_TTL: float = float(os.getenv("SESSION_IDLE_TTL", "3600"))
