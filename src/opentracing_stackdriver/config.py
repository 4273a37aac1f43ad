"""
Tracer configuration.
"""

from typing import Dict, Mapping, Optional
from dataclasses import dataclass, field
import logging
import os

from .exceptions import ConfigurationError
from .span_pool import DEFAULT_POOL_SIZE

logger = logging.getLogger(__name__)

DEFAULT_LOG_NAME = "opentracing"


@dataclass
class TracerConfig:
    """Configuration shared by the tracer and the Google Cloud backends."""
    project_id: Optional[str] = None
    service: Optional[str] = None
    version: Optional[str] = None
    log_name: str = DEFAULT_LOG_NAME
    sample_rate: float = 1.0
    baggage: Dict[str, str] = field(default_factory=dict)
    pool_size: int = DEFAULT_POOL_SIZE

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check the configuration values.

        Raises:
            ConfigurationError: If a value is out of range
        """
        if not 0.0 <= self.sample_rate <= 1.0:
            raise ConfigurationError(f"sample_rate must be between 0 and 1, got {self.sample_rate}")
        if self.pool_size < 0:
            raise ConfigurationError(f"pool_size must not be negative, got {self.pool_size}")
        if not self.log_name:
            raise ConfigurationError("log_name must not be empty")
        for key, value in self.baggage.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ConfigurationError(f"baggage items must be strings, got {key!r}: {value!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TracerConfig":
        """
        Build a configuration from environment variables.

        Reads ``GOOGLE_CLOUD_PROJECT`` (or ``GCLOUD_PROJECT``),
        ``STACKDRIVER_SERVICE``, ``STACKDRIVER_VERSION``,
        ``STACKDRIVER_LOG_NAME`` and ``STACKDRIVER_SAMPLE_RATE``.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            The configuration

        Raises:
            ConfigurationError: If a value cannot be parsed or is out of range
        """
        env = os.environ if environ is None else environ

        sample_rate = 1.0
        raw_rate = env.get("STACKDRIVER_SAMPLE_RATE")
        if raw_rate:
            try:
                sample_rate = float(raw_rate)
            except ValueError:
                raise ConfigurationError(f"STACKDRIVER_SAMPLE_RATE is not a number: {raw_rate!r}")

        config = cls(
            project_id=env.get("GOOGLE_CLOUD_PROJECT") or env.get("GCLOUD_PROJECT"),
            service=env.get("STACKDRIVER_SERVICE"),
            version=env.get("STACKDRIVER_VERSION"),
            log_name=env.get("STACKDRIVER_LOG_NAME") or DEFAULT_LOG_NAME,
            sample_rate=sample_rate,
        )
        logger.debug(f"Loaded tracer configuration for project '{config.project_id}'")
        return config
