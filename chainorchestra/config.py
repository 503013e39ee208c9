"""
Configuration for the peer client and the confirmation tracker.

Values come from constructor arguments, or from the environment via
``from_env()``. An explicit mapping passed to ``from_env()`` wins over the
environment, which wins over the defaults.

Environment variables:
    CHAINORCHESTRA_DELAY_STEP     seconds between height polls (0.5)
    CHAINORCHESTRA_DELAY_TIMEOUT  total height-poll wait budget (2.0)
    CHAINORCHESTRA_PEER_HOST      peer address (127.0.0.1)
    CHAINORCHESTRA_PEER_PORT      peer REST port (7050)
    CHAINORCHESTRA_PEER_SCHEME    http or https (http)
    CHAINORCHESTRA_HTTP_TIMEOUT   per-request timeout in seconds (30.0)
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_DELAY_STEP = 0.5
DEFAULT_DELAY_TIMEOUT = 2.0
DEFAULT_PEER_HOST = "127.0.0.1"
DEFAULT_PEER_PORT = 7050
DEFAULT_HTTP_TIMEOUT = 30.0

_SCHEMES = frozenset({"http", "https"})


def _lookup(name: str, overrides: Mapping[str, str] | None) -> str | None:
    if overrides is not None and name in overrides:
        return overrides[name]
    return os.environ.get(name)


def _float(name: str, default: float, overrides: Mapping[str, str] | None) -> float:
    raw = _lookup(name, overrides)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from None


def _int(name: str, default: int, overrides: Mapping[str, str] | None) -> int:
    raw = _lookup(name, overrides)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from None


@dataclass(frozen=True)
class TrackerConfig:
    """Polling policy for the height-growth phase.

    Attributes:
        delay_step: Seconds to wait between two height polls while the
            chain has not grown.
        delay_timeout: Total seconds the growth phase may spend waiting
            before the confirmation times out. Zero means "poll once".
    """

    delay_step: float = DEFAULT_DELAY_STEP
    delay_timeout: float = DEFAULT_DELAY_TIMEOUT

    def __post_init__(self) -> None:
        if self.delay_step <= 0:
            raise ValueError(f"delay_step must be > 0, got: {self.delay_step}")
        if self.delay_timeout < 0:
            raise ValueError(f"delay_timeout must be >= 0, got: {self.delay_timeout}")

    @property
    def max_waits(self) -> int:
        """Number of delay_step waits that fit in delay_timeout.

        A partial final step still counts as a wait.
        """
        return max(0, math.ceil(self.delay_timeout / self.delay_step - 1e-9))

    @classmethod
    def from_env(cls, overrides: Mapping[str, str] | None = None) -> TrackerConfig:
        return cls(
            delay_step=_float("CHAINORCHESTRA_DELAY_STEP", DEFAULT_DELAY_STEP, overrides),
            delay_timeout=_float(
                "CHAINORCHESTRA_DELAY_TIMEOUT", DEFAULT_DELAY_TIMEOUT, overrides
            ),
        )


@dataclass(frozen=True)
class PeerConfig:
    """Where and how to reach a peer's REST interface."""

    host: str = DEFAULT_PEER_HOST
    port: int = DEFAULT_PEER_PORT
    scheme: str = "http"
    timeout_s: float = DEFAULT_HTTP_TIMEOUT

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must be non-empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be in 1..65535, got: {self.port}")
        if self.scheme not in _SCHEMES:
            raise ValueError(f"scheme must be 'http' or 'https', got: {self.scheme!r}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got: {self.timeout_s}")

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, overrides: Mapping[str, str] | None = None) -> PeerConfig:
        return cls(
            host=_lookup("CHAINORCHESTRA_PEER_HOST", overrides) or DEFAULT_PEER_HOST,
            port=_int("CHAINORCHESTRA_PEER_PORT", DEFAULT_PEER_PORT, overrides),
            scheme=_lookup("CHAINORCHESTRA_PEER_SCHEME", overrides) or "http",
            timeout_s=_float("CHAINORCHESTRA_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, overrides),
        )
