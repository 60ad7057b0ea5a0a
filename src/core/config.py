"""
config.py — Settings for the quote delivery service

Single source of truth for every credential and deployment knob. Read once at
startup by load_settings() into an immutable Settings value that is injected
into the delivery service; business code never reads os.environ directly.

Env vars:
  QUOTES_DATA_DIR            — Data directory (SQLite file, logs)
  QUOTES_DB_PATH             — SQLite file override
  SUPABASE_URL               — Hosted auth base URL (bearer token → user)
  SUPABASE_SERVICE_ROLE_KEY  — apikey header for the auth endpoint
  ADMIN_ROLE                 — Profile role allowed to send quotes
  APP_BASE_URL               — Public origin for accept/SLA links and logos
  MAIL_PROVIDER              — "mailjet" (default) or "smtp"
  MAILJET_API_KEY            — Mailjet public key
  MAILJET_API_SECRET         — Mailjet private key
  MAIL_FROM_EMAIL            — Sender address (falls back to MAILJET_FROM_EMAIL)
  MAIL_FROM_NAME             — Sender name (falls back to MAILJET_FROM_NAME)
  SMTP_HOST / SMTP_PORT      — SMTP relay
  SMTP_USER / SMTP_PASSWORD  — SMTP login
  BRAND_NAME                 — Brand used in subject, attachment name, PDF
  HTTP_TIMEOUT               — Outbound HTTP timeout (seconds)

Security:
  - Values are never logged in full (masked to first 8 chars)
  - Health endpoint shows which settings are set, not their values
"""

import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

log = logging.getLogger("continuate.config")

DEFAULT_FROM_NAME = "Continuate IT Services"
DEFAULT_BRAND = "Continuate"

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ─── Setting Definitions ─────────────────────────────────────────────────────

_REGISTRY = {
    "data_dir": {
        "env": "QUOTES_DATA_DIR",
        "desc": "Data directory for the SQLite file and logs",
        "default": os.path.join(_PROJECT_ROOT, "data"),
    },
    "db_path": {
        "env": "QUOTES_DB_PATH",
        "desc": "SQLite database file",
    },
    "supabase_url": {
        "env": "SUPABASE_URL",
        "required": True,
        "desc": "Hosted auth base URL",
    },
    "supabase_key": {
        "env": "SUPABASE_SERVICE_ROLE_KEY",
        "required": True,
        "desc": "Service key sent as apikey to the auth endpoint",
        "sensitive": True,
    },
    "admin_role": {
        "env": "ADMIN_ROLE",
        "desc": "Profile role allowed to send quotes",
        "default": "admin",
    },
    "app_base_url": {
        "env": "APP_BASE_URL",
        "desc": "Public origin override for links and logos",
    },
    "mail_provider": {
        "env": "MAIL_PROVIDER",
        "desc": "Mail provider: mailjet or smtp",
        "default": "mailjet",
    },
    "mailjet_api_key": {
        "env": "MAILJET_API_KEY",
        "desc": "Mailjet API key",
    },
    "mailjet_api_secret": {
        "env": "MAILJET_API_SECRET",
        "desc": "Mailjet API secret",
        "sensitive": True,
    },
    "mail_from_email": {
        "env": "MAIL_FROM_EMAIL",
        "fallback": "MAILJET_FROM_EMAIL",
        "desc": "Sender address",
    },
    "mail_from_name": {
        "env": "MAIL_FROM_NAME",
        "fallback": "MAILJET_FROM_NAME",
        "desc": "Sender display name",
        "default": DEFAULT_FROM_NAME,
    },
    "smtp_host": {
        "env": "SMTP_HOST",
        "desc": "SMTP relay host",
        "default": "smtp.gmail.com",
    },
    "smtp_port": {
        "env": "SMTP_PORT",
        "desc": "SMTP relay port",
        "default": "587",
    },
    "smtp_user": {
        "env": "SMTP_USER",
        "desc": "SMTP login (defaults to the sender address)",
    },
    "smtp_password": {
        "env": "SMTP_PASSWORD",
        "desc": "SMTP password or app password",
        "sensitive": True,
    },
    "brand_name": {
        "env": "BRAND_NAME",
        "desc": "Brand used in subject lines, attachments and the PDF",
        "default": DEFAULT_BRAND,
    },
    "http_timeout": {
        "env": "HTTP_TIMEOUT",
        "desc": "Outbound HTTP timeout in seconds",
        "default": "10",
    },
}


def get_key(name: str, environ: Mapping[str, str] = None) -> str:
    """Get a setting by registry name. Returns empty string if not set."""
    env = os.environ if environ is None else environ
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown setting requested: %s", name)
        return ""

    val = env.get(entry["env"], "")
    if not val and "fallback" in entry:
        val = env.get(entry["fallback"], "")
    if not val and "default" in entry:
        val = entry["default"]
    return val


def mask(value: str) -> str:
    """Mask a secret for safe logging. Shows first 8 chars."""
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return value[:4] + "****"
    return value[:8] + "****" + f"({len(value)} chars)"


# ─── Settings value ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Settings:
    db_path: str
    data_dir: str = ""
    supabase_url: str = ""
    supabase_key: str = ""
    admin_role: str = "admin"
    app_base_url: str = ""
    mail_provider: str = "mailjet"
    mailjet_api_key: str = ""
    mailjet_api_secret: str = ""
    mail_from_email: str = ""
    mail_from_name: str = DEFAULT_FROM_NAME
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    brand_name: str = DEFAULT_BRAND
    http_timeout: float = 10.0

    @property
    def delivery_configured(self) -> bool:
        """True when the selected provider has credentials and a sender."""
        if not self.mail_from_email:
            return False
        if self.mail_provider == "smtp":
            return bool(self.smtp_host and self.smtp_password)
        return bool(self.mailjet_api_key and self.mailjet_api_secret)

    def origin_for(self, request_host: Optional[str]) -> str:
        """APP_BASE_URL wins; otherwise https://<Host>; empty when neither."""
        if self.app_base_url:
            return self.app_base_url.rstrip("/")
        if not request_host:
            return ""
        return f"https://{request_host}"


def load_settings(environ: Mapping[str, str] = None) -> Settings:
    """Read every registry entry once and freeze the result."""
    def get(name):
        return get_key(name, environ)

    data_dir = get("data_dir")
    db_path = get("db_path") or os.path.join(data_dir, "quotes.db")

    try:
        smtp_port = int(get("smtp_port"))
    except ValueError:
        log.warning("SMTP_PORT is not a number, using 587")
        smtp_port = 587
    try:
        http_timeout = float(get("http_timeout"))
    except ValueError:
        log.warning("HTTP_TIMEOUT is not a number, using 10")
        http_timeout = 10.0

    provider = get("mail_provider").strip().lower()
    if provider not in ("mailjet", "smtp"):
        log.warning("Unknown MAIL_PROVIDER %r, using mailjet", provider)
        provider = "mailjet"

    return Settings(
        db_path=db_path,
        data_dir=data_dir,
        supabase_url=get("supabase_url").rstrip("/"),
        supabase_key=get("supabase_key"),
        admin_role=get("admin_role"),
        app_base_url=get("app_base_url"),
        mail_provider=provider,
        mailjet_api_key=get("mailjet_api_key"),
        mailjet_api_secret=get("mailjet_api_secret"),
        mail_from_email=get("mail_from_email"),
        mail_from_name=get("mail_from_name"),
        smtp_host=get("smtp_host"),
        smtp_port=smtp_port,
        smtp_user=get("smtp_user") or get("mail_from_email"),
        smtp_password=get("smtp_password"),
        brand_name=get("brand_name"),
        http_timeout=http_timeout,
    )


def _report(values: Mapping[str, str]) -> dict:
    results = {}
    warnings = []
    for name, entry in _REGISTRY.items():
        val = values.get(name) or ""
        is_set = bool(val)
        results[name] = {
            "set": is_set,
            "env": entry["env"],
            "desc": entry["desc"],
            "masked": mask(val) if not entry.get("sensitive") else ("set" if is_set else "not set"),
            "required": entry.get("required", False),
        }
        if entry.get("required") and not is_set:
            warnings.append(f"REQUIRED setting missing: {entry['env']} ({entry['desc']})")

    return {
        "settings": results,
        "total": len(results),
        "set": sum(1 for r in results.values() if r["set"]),
        "missing": sum(1 for r in results.values() if not r["set"]),
        "warnings": warnings,
    }


def validate_all(environ: Mapping[str, str] = None) -> dict:
    """Validate all settings as the environment defines them. Returns status report."""
    env = os.environ if environ is None else environ
    report = _report({name: get_key(name, env) for name in _REGISTRY})
    for name, entry in _REGISTRY.items():
        if "fallback" in entry:
            report["settings"][name]["fallback"] = entry["fallback"]
            report["settings"][name]["using_fallback"] = (
                not env.get(entry["env"]) and bool(env.get(entry["fallback"]))
            )
    return report


def validate_settings(settings: Settings) -> dict:
    """Same report for the Settings value the service actually runs with."""
    return _report({name: str(getattr(settings, name, "") or "") for name in _REGISTRY})


def startup_check(settings: Settings) -> dict:
    """Run on startup. Logs warnings for missing critical settings."""
    report = validate_settings(settings)
    log.info("Settings: %d/%d configured", report["set"], report["total"])
    for w in report["warnings"]:
        log.warning("CONFIG: %s", w)
    if settings.delivery_configured:
        log.info("Mail delivery: %s as %s", settings.mail_provider, settings.mail_from_email)
    else:
        log.warning("Mail delivery not configured (%s), sends will return a warning",
                    settings.mail_provider)
    report["delivery_configured"] = settings.delivery_configured
    report["mail_provider"] = settings.mail_provider
    return report
