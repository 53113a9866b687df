# utils/config.py

import os
import logging
from dotenv import load_dotenv
from typing import Callable, Dict, Any, Optional

# Initialize logger
logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

Getter = Callable[[str, Any], Any]


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and "DB_CONFIG" in st.secrets
    except Exception:
        return False


def build_database_url(db_config: Dict[str, Any]) -> str:
    """Build SQLAlchemy URL from discrete DB settings (MySQL via PyMySQL)"""
    if db_config.get("url"):
        return db_config["url"]
    return (
        f"mysql+pymysql://{db_config['user']}:{db_config['password']}"
        f"@{db_config['host']}:{db_config.get('port', 3306)}/{db_config['database']}"
    )


def _as_int(name: str, raw: Any, default: int) -> int:
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning(f"⚠️  {name}={raw!r} is not a number, using {default}")
        return default


def _as_flag(raw: Any, default: bool = True) -> bool:
    if raw in (None, ""):
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def _read_email_config(get: Getter) -> Dict[str, Any]:
    """Outbound account, SMTP server and team lists from one settings source"""
    return {
        "outbound": {
            "sender": get("OUTBOUND_EMAIL_SENDER", None),
            "password": get("OUTBOUND_EMAIL_PASSWORD", None),
        },
        "smtp": {
            "host": get("SMTP_HOST", None) or "smtp.gmail.com",
            "port": _as_int("SMTP_PORT", get("SMTP_PORT", None), 587),
        },
        "contracts_team": get("CONTRACTS_TEAM_EMAIL", None),
        "sales_team": get("SALES_TEAM_EMAIL", None),
    }


class Config:
    """Settings for the contract back-office (Streamlit secrets or .env)"""

    def __init__(self):
        self.is_cloud = is_running_on_streamlit_cloud()
        self._load_config()

    def _load_config(self):
        if self.is_cloud:
            self._load_cloud_config()
        else:
            self._load_local_config()

        self._load_app_config(os.getenv)
        self._log_config_status()

    def _load_cloud_config(self):
        """Streamlit Cloud: DB_CONFIG and EMAIL sections of st.secrets"""
        import streamlit as st

        self.db_config = dict(st.secrets["DB_CONFIG"])
        self.db_config.setdefault("url", st.secrets.get("DATABASE_URL"))

        email_section = st.secrets.get("EMAIL", {})
        self.email_config = _read_email_config(email_section.get)

        logger.info("☁️  Running in STREAMLIT CLOUD")

    def _load_local_config(self):
        """Local run: environment variables, optionally from .env"""
        load_dotenv()

        # DATABASE_URL wins over discrete settings
        database_url = os.getenv("DATABASE_URL")
        self.db_config = {
            "url": database_url,
            "host": os.getenv("DB_HOST"),
            "port": _as_int("DB_PORT", os.getenv("DB_PORT"), 3306),
            "user": os.getenv("DB_USER"),
            "password": os.getenv("DB_PASSWORD"),
            "database": os.getenv("DB_NAME", os.getenv("DB_DATABASE", "travel_contracts"))
        }

        if not database_url and not all([self.db_config["host"], self.db_config["user"], self.db_config["password"]]):
            raise ValueError("Missing database configuration. Set DATABASE_URL or DB_HOST/DB_USER/DB_PASSWORD in .env")

        self.email_config = _read_email_config(os.getenv)

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self, get: Getter):
        self.app_config = {
            # Session management
            "SESSION_TIMEOUT_HOURS": _as_int("SESSION_TIMEOUT_HOURS", get("SESSION_TIMEOUT_HOURS", None), 8),

            # Listing
            "PAGE_SIZE": _as_int("PAGE_SIZE", get("PAGE_SIZE", None), 25),

            # Contract and allocation rules
            "RELEASE_WARNING_DAYS": _as_int("RELEASE_WARNING_DAYS", get("RELEASE_WARNING_DAYS", None), 30),
            "DEADLINE_REMINDER_DAYS": _as_int("DEADLINE_REMINDER_DAYS", get("DEADLINE_REMINDER_DAYS", None), 14),
            "DEFAULT_CURRENCY": (get("DEFAULT_CURRENCY", None) or "EUR").upper(),

            # Performance
            "CACHE_TTL_SECONDS": _as_int("CACHE_TTL_SECONDS", get("CACHE_TTL_SECONDS", None), 300),
            "DB_POOL_SIZE": _as_int("DB_POOL_SIZE", get("DB_POOL_SIZE", None), 5),
            "DB_POOL_RECYCLE": _as_int("DB_POOL_RECYCLE", get("DB_POOL_RECYCLE", None), 3600),

            # Features
            "ENABLE_EMAIL_NOTIFICATIONS": _as_flag(get("ENABLE_EMAIL_NOTIFICATIONS", None)),
        }

    def _log_config_status(self):
        """Log configuration status with secrets masked"""

        issues = []

        # ═══════════════════════════════════════════════════════════════
        # DATABASE
        # ═══════════════════════════════════════════════════════════════
        logger.info("─" * 55)
        logger.info("📊 DATABASE CONFIGURATION")

        if self.db_config.get('url'):
            scheme = self.db_config['url'].split('://', 1)[0]
            logger.info(f"   ✅ URL: {scheme}://{'*' * 8} (DATABASE_URL)")
        else:
            missing = [k for k in ('host', 'user', 'password', 'database') if not self.db_config.get(k)]
            if missing:
                logger.error(f"   ❌ Missing: {', '.join(missing)}")
                issues.append(f"Database: missing {', '.join(missing)}")
            else:
                logger.info(f"   ✅ Server: {self.db_config['host']}:{self.db_config.get('port', 3306)}"
                            f"/{self.db_config['database']} as {self.db_config['user']}")

        # ═══════════════════════════════════════════════════════════════
        # EMAIL
        # ═══════════════════════════════════════════════════════════════
        logger.info("─" * 55)
        logger.info("📧 REMINDER EMAIL")

        outbound = self.email_config['outbound']
        smtp = self.email_config['smtp']

        if outbound.get('sender') and outbound.get('password'):
            logger.info(f"   ✅ Sender: {outbound['sender']} via {smtp['host']}:{smtp['port']}")
        elif outbound.get('sender'):
            logger.error(f"   ❌ Sender {outbound['sender']} has no password - reminders will FAIL!")
            issues.append("Outbound email: password missing")
        else:
            logger.info("   ℹ️  Sender not configured (reminders disabled)")

        for team in ('contracts_team', 'sales_team'):
            address = self.email_config.get(team)
            label = team.replace('_', ' ').title()
            if address:
                logger.info(f"   ✅ {label}: {address}")
            else:
                logger.info(f"   ℹ️  {label}: not set")

        # ═══════════════════════════════════════════════════════════════
        # SUMMARY
        # ═══════════════════════════════════════════════════════════════
        logger.info("─" * 55)
        logger.info(f"⚙️  Release window {self.app_config['RELEASE_WARNING_DAYS']}d, "
                    f"deadline window {self.app_config['DEADLINE_REMINDER_DAYS']}d, "
                    f"default currency {self.app_config['DEFAULT_CURRENCY']}")
        if issues:
            logger.warning(f"⚠️  CONFIGURATION ISSUES FOUND ({len(issues)}):")
            for issue in issues:
                logger.warning(f"   • {issue}")
        else:
            logger.info("✅ ALL REQUIRED CONFIGURATIONS LOADED SUCCESSFULLY")
        logger.info("─" * 55)

    def get_database_url(self) -> str:
        """Get SQLAlchemy database URL"""
        return build_database_url(self.db_config)

    def get_email_config(self, module: str = "outbound") -> Dict[str, Any]:
        """Sender account merged with SMTP host/port"""
        email = self.email_config.get(module, self.email_config["outbound"])
        return {
            **email,
            **self.email_config["smtp"]
        }

    def get_team_email(self, team: str) -> Optional[str]:
        """Get distribution list address ('contracts_team' or 'sales_team')"""
        return self.email_config.get(team)

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        return self.app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        return self.app_config.get(f"ENABLE_{feature.upper()}", True)


# Create singleton instance
config = Config()

APP_CONFIG = config.app_config
OUTBOUND_EMAIL_CONFIG = config.get_email_config("outbound")


__all__ = [
    'config',
    'Config',
    'build_database_url',
    'APP_CONFIG',
    'OUTBOUND_EMAIL_CONFIG'
]
