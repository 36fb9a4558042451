import os
import logging

from dotenv import load_dotenv
from pydantic import BaseModel, Field

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings(BaseModel):
    units_dir: str = "units"
    progress_dir: str = "progress"
    lock_timeout: float = Field(5.0, gt=0)  # seconds
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment, after loading any .env file"""
        load_dotenv()
        values = {
            'units_dir': os.getenv('CURRICULUM_UNITS_DIR'),
            'progress_dir': os.getenv('CURRICULUM_PROGRESS_DIR'),
            'lock_timeout': os.getenv('CURRICULUM_LOCK_TIMEOUT'),
            'log_level': os.getenv('CURRICULUM_LOG_LEVEL'),
        }
        return cls(**{k: v for k, v in values.items() if v})


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
