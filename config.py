# config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    """
    Application configuration, read from the environment.
    A local .env file is loaded first so development settings don't need exporting.
    """
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL', 'sqlite:///' + os.path.join(BASE_DIR, 'parking_lot.db')
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    STORAGE_TIMEOUT = float(os.environ.get('STORAGE_TIMEOUT', 3))
    PAGE_SIZE = int(os.environ.get('PAGE_SIZE', 10))
    FEE_PER_HOUR = int(os.environ.get('FEE_PER_HOUR', 10))
    CLAIM_RETRY_LIMIT = int(os.environ.get('CLAIM_RETRY_LIMIT', 5))
    TRANSIENT_RETRY_LIMIT = int(os.environ.get('TRANSIENT_RETRY_LIMIT', 2))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


@dataclass(frozen=True)
class ParkingSettings:
    """Tunables handed to the lifecycle coordinator."""
    storage_timeout: float = 3.0
    page_size: int = 10
    fee_per_hour: int = 10
    claim_retry_limit: int = 5
    transient_retry_limit: int = 2

    @classmethod
    def from_mapping(cls, mapping):
        return cls(
            storage_timeout=float(mapping.get('STORAGE_TIMEOUT', cls.storage_timeout)),
            page_size=int(mapping.get('PAGE_SIZE', cls.page_size)),
            fee_per_hour=int(mapping.get('FEE_PER_HOUR', cls.fee_per_hour)),
            claim_retry_limit=int(mapping.get('CLAIM_RETRY_LIMIT', cls.claim_retry_limit)),
            transient_retry_limit=int(mapping.get('TRANSIENT_RETRY_LIMIT', cls.transient_retry_limit)),
        )
