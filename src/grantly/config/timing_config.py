"""
Timing, limit and retry configuration for capability orchestration.

All timing values are in seconds unless otherwise specified.
"""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class TimingConfig:
    """
    Centralized limits used by the isolation gate, recovery manager and
    orchestrator.
    """

    min_request_interval: float = 1.0
    """Minimum time between two host prompts"""

    max_concurrent_requests: int = 3
    """Ceiling on requests tracked by the isolation gate"""

    gate_request_timeout: float = 30.0
    """Gate entries older than this are purged as stuck"""

    lockout_duration: float = 5.0
    """Length of the recovery lockout window"""

    max_request_age: float = 300.0
    """Descriptors older than this are purged by the expiry sweep"""

    stale_request_threshold: float = 30.0
    """A blocking request older than this is treated as stuck"""

    sweep_interval: float = 10.0
    """Period of the background expiry sweeper"""

    # Retry
    retry_max_attempts: int = 3
    """Attempt ceiling for transient host failures"""

    retry_initial_delay: float = 1.0
    """Delay before the first retry"""

    retry_max_delay: float = 8.0
    """Cap on the exponential backoff delay"""

    retry_jitter_ratio: float = 0.1
    """Upper bound of random jitter as a fraction of the delay"""

    # Identifiers
    max_capability_length: int = 256
    """Longest accepted capability identifier"""


DEFAULT_TIMING = TimingConfig()


def get_timing_config() -> TimingConfig:
    """Get the default timing configuration instance."""
    return DEFAULT_TIMING


def create_custom_timing(
    min_request_interval: Optional[float] = None,
    max_concurrent_requests: Optional[int] = None,
    lockout_duration: Optional[float] = None,
    max_request_age: Optional[float] = None,
    retry_max_attempts: Optional[int] = None,
    retry_initial_delay: Optional[float] = None,
) -> TimingConfig:
    """
    Create a custom timing configuration.

    Args:
        min_request_interval: Override minimum interval between prompts
        max_concurrent_requests: Override in-flight ceiling
        lockout_duration: Override recovery lockout window
        max_request_age: Override descriptor expiry age
        retry_max_attempts: Override retry attempt ceiling
        retry_initial_delay: Override first retry delay

    Returns:
        TimingConfig with custom values
    """
    overrides = {
        "min_request_interval": min_request_interval,
        "max_concurrent_requests": max_concurrent_requests,
        "lockout_duration": lockout_duration,
        "max_request_age": max_request_age,
        "retry_max_attempts": retry_max_attempts,
        "retry_initial_delay": retry_initial_delay,
    }
    return replace(
        DEFAULT_TIMING, **{k: v for k, v in overrides.items() if v is not None}
    )
