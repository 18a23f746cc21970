"""Tests for tabby.config."""

import pytest

from tabby._errors import ConfigError
from tabby.config import TabbyConfig


class TestTabbyConfig:
    """TabbyConfig — frozen dataclass with sensible defaults."""

    def test_defaults(self) -> None:
        config = TabbyConfig()
        assert config.max_events == 10_000
        assert config.verbose is False
        assert config.invalidate_on_vote_error is True
        assert config.invalidate_contexts_on_delete is True
        assert config.live_prepend_limit == 0
        assert config.live_timelines == ("home",)

    def test_frozen(self) -> None:
        config = TabbyConfig()
        with pytest.raises(AttributeError):
            config.verbose = True  # type: ignore[misc]

    def test_live_timelines_list_becomes_tuple(self) -> None:
        config = TabbyConfig(live_timelines=["home", "public"])  # type: ignore[arg-type]
        assert config.live_timelines == ("home", "public")

    def test_invalid_max_events(self) -> None:
        with pytest.raises(ConfigError, match="max_events"):
            TabbyConfig(max_events=0)

    def test_negative_prepend_limit(self) -> None:
        with pytest.raises(ConfigError, match="live_prepend_limit"):
            TabbyConfig(live_prepend_limit=-1)

    def test_unknown_live_timeline(self) -> None:
        with pytest.raises(ConfigError, match="federated"):
            TabbyConfig(live_timelines=("home", "federated"))
