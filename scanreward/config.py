"""
Configuration management for the ScanReward loyalty engine.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Revisit cooldown applied when a shop has not configured its own
    DEFAULT_COOLDOWN_SECONDS = int(os.getenv('DEFAULT_COOLDOWN_SECONDS', '1800'))

    # Bounded wait for a scan or redemption transaction
    TRANSACTION_TIMEOUT_SECONDS = int(os.getenv('TRANSACTION_TIMEOUT_SECONDS', '60'))

    # Optimistic write retries (stale Registration/Gift versions)
    TRANSACTION_MAX_ATTEMPTS = int(os.getenv('TRANSACTION_MAX_ATTEMPTS', '3'))

    # Push notification gateway (FCM relay)
    PUSH_GATEWAY_URL = os.getenv('PUSH_GATEWAY_URL', '')
    PUSH_GATEWAY_KEY = os.getenv('PUSH_GATEWAY_KEY', '')
    PUSH_TIMEOUT_SECONDS = int(os.getenv('PUSH_TIMEOUT_SECONDS', '10'))

    # Where the client app sends users to finish their profile
    PROFILE_COMPLETION_PATH = os.getenv('PROFILE_COMPLETION_PATH', '/account/profile')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///scanreward_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,
        # Abandoned scans/redemptions must not hold row locks forever
        'connect_args': {
            'options': f"-c statement_timeout={BaseConfig.TRANSACTION_TIMEOUT_SECONDS * 1000}"
        },
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, empty, or contains unsafe values
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Production deployments MUST have a secure SECRET_KEY."
            )

        insecure_patterns = ['dev', 'change', 'default', 'test', 'secret', 'password']
        lower_key = cls._secret_key.lower()
        for pattern in insecure_patterns:
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    @classmethod
    def validate_database_url(cls) -> str:
        """Production never falls back to a local SQLite file."""
        if not cls.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("CRITICAL: DATABASE_URL environment variable is not set!")
        return cls.SQLALCHEMY_DATABASE_URI

    SECRET_KEY = _secret_key  # Will be validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    PUSH_GATEWAY_URL = ''


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Args:
        config_name: The configuration environment name

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
        ProductionConfig.validate_database_url()
