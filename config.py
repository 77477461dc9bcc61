"""App-wide configuration and environment settings."""

import logging
import os
from dataclasses import dataclass

try:
    import streamlit as st
except ImportError:
    st = None
from dotenv import load_dotenv

load_dotenv()  # Load from .env file


def get_secret(key, default=None):
    """Try st.secrets first, then os.getenv."""
    if st is not None:
        try:
            # Accessing st.secrets might raise FileNotFoundError if no secrets.toml on local
            if key in st.secrets:
                return st.secrets[key]
        except (FileNotFoundError, AttributeError, KeyError):
            pass
    return os.getenv(key, default)


# ── Wizard constants ────────────────────────────────────────────────────
TOTAL_FORM_STEPS = 3
DOCUMENT_NAME = "vehicle_registration"


@dataclass(frozen=True)
class AppConfig:
    """Startup settings, passed explicitly into the session and the store."""

    namespace: str = "artifacts/wraprewards"
    firebase_api_key: str = ""
    auth_token: str = ""
    store_backend: str = "memory"
    gcp_project: str = ""
    credentials_path: str = ""
    log_level: str = "INFO"
    langsmith_tracing: bool = False
    langsmith_project: str = "wraprewards"


def load_config() -> AppConfig:
    """Build the config value once at startup."""
    return AppConfig(
        namespace=get_secret("WRAP_NAMESPACE", "artifacts/wraprewards").strip("/"),
        firebase_api_key=get_secret("FIREBASE_API_KEY", ""),
        auth_token=get_secret("INITIAL_AUTH_TOKEN", ""),
        store_backend=get_secret("STORE_BACKEND", "memory").lower(),
        gcp_project=get_secret("GOOGLE_CLOUD_PROJECT", ""),
        credentials_path=get_secret("GOOGLE_APPLICATION_CREDENTIALS", ""),
        log_level=get_secret("LOG_LEVEL", "INFO").upper(),
        langsmith_tracing=str(get_secret("LANGSMITH_TRACING", "false")).lower() in ("true", "1"),
        langsmith_project=get_secret("LANGSMITH_PROJECT", "wraprewards"),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
