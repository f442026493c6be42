# config/settings.py
from __future__ import annotations
import logging
import os
import re
from datetime import date
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel

from cx_core.schemas import ReferenceDates, StagePlan

# Reference cells of the originating schedule sheet (J1 / W1 / AQ1)
DEFAULT_REFERENCE_DATES = ReferenceDates(
    l1=StagePlan(plan_start=date(2025, 11, 10), plan_end=date(2025, 12, 1)),
    l2=StagePlan(plan_start=date(2026, 1, 26), plan_end=date(2026, 2, 16)),
    l3=StagePlan(plan_start=date(2026, 4, 22), plan_end=date(2026, 4, 30)),
)

PAGE_SIZES = [25, 50, 100, 250]


class FirebaseCredentials(BaseModel):
    project_id: str
    client_email: str
    private_key: str

    def as_service_account(self) -> Dict[str, str]:
        return {
            "type": "service_account",
            "project_id": self.project_id,
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": "https://oauth2.googleapis.com/token",
        }


class Settings(BaseModel):
    env: str = "production"
    collection: str = "equipments"
    mock_path: str = os.path.join("data", "mock_equipments.json")
    log_level: str = "INFO"
    cache_ttl: int = 3600
    page_size: int = 50
    firebase: Optional[FirebaseCredentials] = None

    @property
    def is_dev(self) -> bool:
        return self.env.lower() in ("dev", "development", "local")


def format_private_key(key: Optional[str]) -> Optional[str]:
    """Strip accidental surrounding quotes and unescape literal \\n sequences."""
    if not key:
        return None
    clean = re.sub(r"^['\"]|['\"]$", "", key.strip())
    return clean.replace("\\n", "\n")


def _streamlit_secrets() -> Mapping[str, Any]:
    try:
        import streamlit as st  # type: ignore
        return dict(st.secrets)
    except Exception:
        return {}


def _firebase_from(section: Mapping[str, Any], environ: Mapping[str, str]) -> Optional[FirebaseCredentials]:
    project_id = section.get("project_id") or environ.get("FIREBASE_PROJECT_ID")
    client_email = section.get("client_email") or environ.get("FIREBASE_CLIENT_EMAIL")
    private_key = format_private_key(section.get("private_key") or environ.get("FIREBASE_PRIVATE_KEY"))
    if not (project_id and client_email and private_key):
        return None
    return FirebaseCredentials(project_id=project_id, client_email=client_email, private_key=private_key)


def load_settings(environ: Optional[Mapping[str, str]] = None,
                  secrets: Optional[Mapping[str, Any]] = None) -> Settings:
    """
    Settings from Streamlit secrets ([cx] and [firebase] sections) first,
    then environment variables, then defaults.
    """
    environ = os.environ if environ is None else environ
    secrets = _streamlit_secrets() if secrets is None else secrets
    cx = dict(secrets.get("cx") or {})
    fb = dict(secrets.get("firebase") or {})

    def pick(key: str, env_key: str, default: Any) -> Any:
        if key in cx:
            return cx[key]
        return environ.get(env_key, default)

    defaults = Settings()
    return Settings(
        env=pick("env", "CX_ENV", defaults.env),
        collection=pick("collection", "CX_COLLECTION", defaults.collection),
        mock_path=pick("mock_path", "CX_MOCK_PATH", defaults.mock_path),
        log_level=pick("log_level", "CX_LOG_LEVEL", defaults.log_level),
        cache_ttl=int(pick("cache_ttl", "CX_CACHE_TTL", defaults.cache_ttl)),
        page_size=int(pick("page_size", "CX_PAGE_SIZE", defaults.page_size)),
        firebase=_firebase_from(fb, environ),
    )


_LOGGING_CONFIGURED = False


def configure_logging(level: str = "INFO") -> None:
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _LOGGING_CONFIGURED = True
