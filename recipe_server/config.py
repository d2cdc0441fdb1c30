"""Application settings loaded from environment variables."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEVELOPMENT_ENVS = ('development', 'dev', 'local')

# Highest precedence first
ENV_FILES = ('.env.local', '.env')


def load_env_file(filepath: str) -> None:
  """Load KEY=VALUE pairs from a file into the environment.

  Variables already set in the environment win over the file, so files are
  loaded in ENV_FILES order: .env.local overrides .env.
  """
  if Path(filepath).exists():
    with open(filepath) as f:
      for line in f:
        line = line.strip()
        if line and not line.startswith('#'):
          key, _, value = line.partition('=')
          if key and value:
            os.environ.setdefault(key.strip(), value.strip())


class Settings(BaseModel):
  """Runtime configuration for the API and its monitoring subsystem."""

  app_env: str = Field('production', description='production or development')
  app_version: str = '1.0.0'
  log_level: str = 'INFO'
  slow_request_ms: float = Field(1000, gt=0, description='Request duration that logs a warning')
  rate_limit_window_ms: int = Field(60000, gt=0)
  rate_limit_max_requests: int = Field(0, ge=0, description='0 disables rate limiting')
  event_queue_size: int = Field(1000, gt=0, description='Per-subscriber event buffer')
  admin_token: Optional[str] = None

  @property
  def is_development(self) -> bool:
    return self.app_env.lower() in DEVELOPMENT_ENVS

  @property
  def is_production(self) -> bool:
    return not self.is_development

  @classmethod
  def from_env(cls) -> 'Settings':
    """Build settings from the current process environment."""
    values = {
      'app_env': os.getenv('APP_ENV'),
      'app_version': os.getenv('APP_VERSION'),
      'log_level': os.getenv('LOG_LEVEL'),
      'slow_request_ms': os.getenv('SLOW_REQUEST_MS'),
      'rate_limit_window_ms': os.getenv('RATE_LIMIT_WINDOW_MS'),
      'rate_limit_max_requests': os.getenv('RATE_LIMIT_MAX_REQUESTS'),
      'event_queue_size': os.getenv('EVENT_QUEUE_SIZE'),
      'admin_token': os.getenv('ADMIN_TOKEN') or None,
    }
    return cls(**{key: value for key, value in values.items() if value is not None})


@lru_cache
def get_settings() -> Settings:
  """Return process-wide settings, reading .env files on first use."""
  for env_file in ENV_FILES:
    load_env_file(env_file)
  return Settings.from_env()
