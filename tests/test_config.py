"""Tests for TrackerConfig and PeerConfig."""

from __future__ import annotations

import pytest

from chainorchestra.config import PeerConfig, TrackerConfig


class TestTrackerConfig:
    def test_defaults(self) -> None:
        config = TrackerConfig()
        assert config.delay_step == 0.5
        assert config.delay_timeout == 2.0

    def test_zero_step_rejected(self) -> None:
        with pytest.raises(ValueError, match="delay_step"):
            TrackerConfig(delay_step=0)

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="delay_timeout"):
            TrackerConfig(delay_timeout=-1)

    def test_zero_timeout_allowed(self) -> None:
        assert TrackerConfig(delay_timeout=0).delay_timeout == 0

    @pytest.mark.parametrize(
        ("step", "timeout", "waits"),
        [
            (0.5, 2.0, 4),
            (0.1, 1.0, 10),
            (0.1, 0.7, 7),
            (0.1, 0.3, 3),
            (0.3, 1.0, 4),
            (0.5, 0.0, 0),
        ],
    )
    def test_max_waits(self, step: float, timeout: float, waits: int) -> None:
        assert TrackerConfig(delay_step=step, delay_timeout=timeout).max_waits == waits

    def test_frozen(self) -> None:
        with pytest.raises(Exception):  # FrozenInstanceError
            TrackerConfig().delay_step = 1.0  # type: ignore[misc]

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAINORCHESTRA_DELAY_STEP", "0.25")
        monkeypatch.setenv("CHAINORCHESTRA_DELAY_TIMEOUT", "10")
        config = TrackerConfig.from_env()
        assert config == TrackerConfig(delay_step=0.25, delay_timeout=10.0)

    def test_from_env_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CHAINORCHESTRA_DELAY_STEP", raising=False)
        monkeypatch.delenv("CHAINORCHESTRA_DELAY_TIMEOUT", raising=False)
        assert TrackerConfig.from_env() == TrackerConfig()

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAINORCHESTRA_DELAY_STEP", "0.25")
        config = TrackerConfig.from_env({"CHAINORCHESTRA_DELAY_STEP": "1.5"})
        assert config.delay_step == 1.5

    def test_bad_number(self) -> None:
        with pytest.raises(ValueError, match="CHAINORCHESTRA_DELAY_STEP"):
            TrackerConfig.from_env({"CHAINORCHESTRA_DELAY_STEP": "fast"})


class TestPeerConfig:
    def test_defaults(self) -> None:
        config = PeerConfig()
        assert config.base_url == "http://127.0.0.1:7050"
        assert config.timeout_s == 30.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"host": ""},
            {"port": 0},
            {"port": 70000},
            {"scheme": "ftp"},
            {"timeout_s": 0},
        ],
    )
    def test_invalid(self, kwargs: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            PeerConfig(**kwargs)  # type: ignore[arg-type]

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAINORCHESTRA_PEER_HOST", "vp0")
        monkeypatch.setenv("CHAINORCHESTRA_PEER_PORT", "5000")
        monkeypatch.setenv("CHAINORCHESTRA_PEER_SCHEME", "https")
        monkeypatch.setenv("CHAINORCHESTRA_HTTP_TIMEOUT", "5")
        config = PeerConfig.from_env()
        assert config.base_url == "https://vp0:5000"
        assert config.timeout_s == 5.0

    def test_bad_port(self) -> None:
        with pytest.raises(ValueError, match="CHAINORCHESTRA_PEER_PORT"):
            PeerConfig.from_env({"CHAINORCHESTRA_PEER_PORT": "seventy"})
