# purvita/config.py
"""
Configuration management for the PūrVita admin backend.
Loads from .env, validates critical keys.
"""
import os
import logging
from typing import Any, Dict, List, Tuple
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Configuration error exception."""
    pass


class Config:
    """
    Configuration manager with static and dynamic values.

    Usage:
        # Load from .env
        Config.initialize_from_env()

        # Get value
        url = Config.get(Config.DATABASE_URL)

        # Set dynamic value
        Config.set(Config.SYSTEM_READY, True)
    """

    # ═══════════════════════════════════════════════════════════════════════
    # CONFIGURATION KEYS
    # ═══════════════════════════════════════════════════════════════════════

    # Database
    DATABASE_URL = "DATABASE_URL"

    # Admin API
    API_HOST = "API_HOST"
    API_PORT = "API_PORT"
    ADMIN_API_TOKENS = "ADMIN_API_TOKENS"
    CSRF_SECRET = "CSRF_SECRET"
    CSRF_TOKEN_TTL = "CSRF_TOKEN_TTL"
    API_RATE_LIMIT_REQUESTS = "API_RATE_LIMIT_REQUESTS"
    API_RATE_LIMIT_WINDOW = "API_RATE_LIMIT_WINDOW"
    ADMIN_METRICS_URL = "ADMIN_METRICS_URL"

    # Branding & storage
    APP_NAME = "APP_NAME"
    APP_URL = "APP_URL"
    CURRENCY = "CURRENCY"
    STORAGE_PUBLIC_URL = "STORAGE_PUBLIC_URL"

    # Email - Mailgun
    MAILGUN_API_KEY = "MAILGUN_API_KEY"
    MAILGUN_DOMAIN = "MAILGUN_DOMAIN"
    MAILGUN_FROM_EMAIL = "MAILGUN_FROM_EMAIL"
    MAILGUN_REGION = "MAILGUN_REGION"
    SECURE_EMAIL_DOMAINS = "SECURE_EMAIL_DOMAINS"

    # Email - SMTP
    SMTP_HOST = "SMTP_HOST"
    SMTP_PORT = "SMTP_PORT"
    SMTP_USERNAME = "SMTP_USERNAME"
    SMTP_PASSWORD = "SMTP_PASSWORD"
    SMTP_USE_TLS = "SMTP_USE_TLS"
    SMTP_FROM_EMAIL = "SMTP_FROM_EMAIL"
    EMAIL_FROM_NAME = "EMAIL_FROM_NAME"

    # Payment gateways
    STRIPE_SECRET_KEY = "STRIPE_SECRET_KEY"
    STRIPE_WEBHOOK_SECRET = "STRIPE_WEBHOOK_SECRET"
    PAYPAL_CLIENT_ID = "PAYPAL_CLIENT_ID"
    PAYPAL_CLIENT_SECRET = "PAYPAL_CLIENT_SECRET"
    PAYPAL_ENVIRONMENT = "PAYPAL_ENVIRONMENT"

    # Subscriptions & wallet
    DEFAULT_SUBSCRIPTION_PRICE_CENTS = "DEFAULT_SUBSCRIPTION_PRICE_CENTS"
    SUBSCRIPTION_PERIOD_DAYS = "SUBSCRIPTION_PERIOD_DAYS"
    RENEWAL_DAYS_BEFORE_EXPIRY = "RENEWAL_DAYS_BEFORE_EXPIRY"
    RENEWAL_CRON_HOUR = "RENEWAL_CRON_HOUR"
    WITHDRAWAL_DAILY_LIMIT_CENTS = "WITHDRAWAL_DAILY_LIMIT_CENTS"
    SUBSCRIPTION_COMMISSIONS_ENABLED = "SUBSCRIPTION_COMMISSIONS_ENABLED"

    # System
    SYSTEM_READY = "SYSTEM_READY"

    # ═══════════════════════════════════════════════════════════════════════
    # CRITICAL KEYS (must be present)
    # ═══════════════════════════════════════════════════════════════════════

    CRITICAL_KEYS = [
        DATABASE_URL,
        CSRF_SECRET,
    ]

    # ═══════════════════════════════════════════════════════════════════════
    # STORAGE
    # ═══════════════════════════════════════════════════════════════════════

    _config: Dict[str, Any] = {}
    _initialized: bool = False

    # ═══════════════════════════════════════════════════════════════════════
    # METHODS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def initialize_from_env(cls) -> None:
        """
        Load configuration from .env file.

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        load_dotenv()

        logger.info("Loading configuration from environment...")

        try:
            # Database
            cls._config[cls.DATABASE_URL] = os.getenv(
                "DATABASE_URL",
                "sqlite:///purvita.db"
            )

            # Admin API
            cls._config[cls.API_HOST] = os.getenv("API_HOST", "127.0.0.1")
            cls._config[cls.API_PORT] = int(os.getenv("API_PORT", "8080"))
            cls._config[cls.ADMIN_API_TOKENS] = cls._parse_tokens(
                os.getenv("ADMIN_API_TOKENS", "")
            )
            cls._config[cls.CSRF_SECRET] = os.getenv("CSRF_SECRET")
            cls._config[cls.CSRF_TOKEN_TTL] = int(os.getenv("CSRF_TOKEN_TTL", "3600"))
            cls._config[cls.API_RATE_LIMIT_REQUESTS] = int(
                os.getenv("API_RATE_LIMIT_REQUESTS", "120")
            )
            cls._config[cls.API_RATE_LIMIT_WINDOW] = int(
                os.getenv("API_RATE_LIMIT_WINDOW", "60")
            )
            cls._config[cls.ADMIN_METRICS_URL] = os.getenv(
                "ADMIN_METRICS_URL",
                "http://127.0.0.1:8080/api/admin/dashboard/metrics"
            )

            # Branding & storage
            cls._config[cls.APP_NAME] = os.getenv("APP_NAME", "PūrVita")
            cls._config[cls.APP_URL] = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
            cls._config[cls.CURRENCY] = os.getenv("CURRENCY", "USD").upper()
            cls._config[cls.STORAGE_PUBLIC_URL] = os.getenv(
                "STORAGE_PUBLIC_URL",
                "https://storage.purvita.local/public/"
            )

            # Email - Mailgun
            cls._config[cls.MAILGUN_API_KEY] = os.getenv("MAILGUN_API_KEY")
            cls._config[cls.MAILGUN_DOMAIN] = os.getenv("MAILGUN_DOMAIN")
            cls._config[cls.MAILGUN_REGION] = os.getenv("MAILGUN_REGION", "us")
            cls._config[cls.MAILGUN_FROM_EMAIL] = os.getenv("MAILGUN_FROM_EMAIL")
            cls._config[cls.SECURE_EMAIL_DOMAINS] = os.getenv("SECURE_EMAIL_DOMAINS", "")

            # Email - SMTP
            cls._config[cls.SMTP_HOST] = os.getenv("SMTP_HOST")
            cls._config[cls.SMTP_PORT] = int(os.getenv("SMTP_PORT", "587"))
            cls._config[cls.SMTP_USERNAME] = os.getenv("SMTP_USERNAME")
            cls._config[cls.SMTP_PASSWORD] = os.getenv("SMTP_PASSWORD")
            cls._config[cls.SMTP_USE_TLS] = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
            cls._config[cls.SMTP_FROM_EMAIL] = os.getenv("SMTP_FROM_EMAIL")
            cls._config[cls.EMAIL_FROM_NAME] = os.getenv(
                "EMAIL_FROM_NAME",
                cls._config[cls.APP_NAME]
            )

            # Payment gateways
            cls._config[cls.STRIPE_SECRET_KEY] = os.getenv("STRIPE_SECRET_KEY")
            cls._config[cls.STRIPE_WEBHOOK_SECRET] = os.getenv("STRIPE_WEBHOOK_SECRET")
            cls._config[cls.PAYPAL_CLIENT_ID] = os.getenv("PAYPAL_CLIENT_ID")
            cls._config[cls.PAYPAL_CLIENT_SECRET] = os.getenv("PAYPAL_CLIENT_SECRET")
            cls._config[cls.PAYPAL_ENVIRONMENT] = os.getenv("PAYPAL_ENVIRONMENT", "sandbox")

            # Subscriptions & wallet
            cls._config[cls.DEFAULT_SUBSCRIPTION_PRICE_CENTS] = int(
                os.getenv("DEFAULT_SUBSCRIPTION_PRICE_CENTS", "3499")
            )
            cls._config[cls.SUBSCRIPTION_PERIOD_DAYS] = int(
                os.getenv("SUBSCRIPTION_PERIOD_DAYS", "30")
            )
            cls._config[cls.RENEWAL_DAYS_BEFORE_EXPIRY] = int(
                os.getenv("RENEWAL_DAYS_BEFORE_EXPIRY", "1")
            )
            cls._config[cls.RENEWAL_CRON_HOUR] = int(os.getenv("RENEWAL_CRON_HOUR", "3"))
            cls._config[cls.WITHDRAWAL_DAILY_LIMIT_CENTS] = int(
                os.getenv("WITHDRAWAL_DAILY_LIMIT_CENTS", "50000000")
            )
            cls._config[cls.SUBSCRIPTION_COMMISSIONS_ENABLED] = os.getenv(
                "SUBSCRIPTION_COMMISSIONS_ENABLED", "false"
            ).lower() == "true"

            # System
            cls._config[cls.SYSTEM_READY] = False

            cls._initialized = True
            logger.info("Configuration loaded from environment successfully")

        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            raise ConfigurationError(f"Configuration loading failed: {e}")

    @staticmethod
    def _parse_tokens(raw: str) -> Dict[str, str]:
        """
        Parse "userId:token,userId:token" into {token: userId}.

        Raises:
            ValueError: On an entry without a separator
        """
        tokens = {}
        for entry in raw.split(','):
            entry = entry.strip()
            if not entry:
                continue
            if ':' not in entry:
                raise ValueError(f"Invalid ADMIN_API_TOKENS entry: {entry[:8]}...")
            user_id, token = entry.split(':', 1)
            tokens[token.strip()] = user_id.strip()
        return tokens

    @classmethod
    async def validate_critical_keys(cls) -> None:
        """
        Validate that all critical configuration keys are present.

        Raises:
            ConfigurationError: If any critical key is missing
        """
        missing = []
        for key in cls.CRITICAL_KEYS:
            if not cls.get(key):
                missing.append(key)

        if missing:
            error_msg = f"Missing critical configuration keys: {', '.join(missing)}"
            logger.critical(error_msg)
            raise ConfigurationError(error_msg)

        if not cls.get(cls.ADMIN_API_TOKENS):
            logger.warning("ADMIN_API_TOKENS is empty, admin API will reject every request")

        logger.info("All critical configuration keys validated ✓")

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return cls._config.get(key, default)

    @classmethod
    def set(cls, key: str, value: Any, source: str = "runtime") -> None:
        """
        Set configuration value (for dynamic updates).

        Args:
            key: Configuration key
            value: New value
            source: Source of the update (for logging)
        """
        cls._config[key] = value
        logger.debug(f"Config updated: {key} (source: {source})")

    @classmethod
    def get_all(cls) -> Dict[str, Any]:
        """
        Get all configuration values.

        Returns:
            Copy of configuration dictionary
        """
        return cls._config.copy()

    @classmethod
    def get_secure_domains(cls) -> List[str]:
        """Secure email domains normalized to the "@domain" form."""
        raw = cls.get(cls.SECURE_EMAIL_DOMAINS) or ''
        if isinstance(raw, list):
            domains = raw
        else:
            domains = [d.strip() for d in str(raw).split(',') if d.strip()]
        return [d.lower() if d.startswith('@') else f'@{d.lower()}' for d in domains]

    @classmethod
    def get_admin_tokens(cls) -> List[Tuple[str, str]]:
        """List of (token, userId) pairs accepted by the admin API."""
        return list((cls.get(cls.ADMIN_API_TOKENS) or {}).items())
