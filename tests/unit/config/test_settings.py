"""Unit tests for engine settings.
"""

from citesync.config import Settings, get_settings


class TestSettings:
    """Tests for Settings defaults and environment overrides."""

    def test_defaults(self) -> None:
        """Test default values."""
        settings = Settings(_env_file=None)

        assert settings.default_style == "apa"
        assert settings.max_citation_number == 1000
        assert settings.max_range_span == 50
        assert settings.accepted_suffix == "_corrected"
        assert settings.tracked_suffix == "_tracked_changes"
        assert settings.references_heading == "References"
        assert settings.poll_interval_seconds == 2.0
        assert settings.processing_states == ("ANALYZING", "QUEUED", "PROCESSING")

    def test_environment_override(self, monkeypatch) -> None:
        """Test CITESYNC_ prefixed variables."""
        monkeypatch.setenv("CITESYNC_DEFAULT_STYLE", "vancouver")
        monkeypatch.setenv("CITESYNC_MAX_RANGE_SPAN", "20")
        monkeypatch.setenv("CITESYNC_TRACK_CHANGES_AUTHOR", "Editorial Office")

        settings = Settings(_env_file=None)

        assert settings.default_style == "vancouver"
        assert settings.max_range_span == 20
        assert settings.track_changes_author == "Editorial Office"

    def test_unprefixed_variables_ignored(self, monkeypatch) -> None:
        """Test that variables without the prefix do not apply."""
        monkeypatch.setenv("DEFAULT_STYLE", "ieee")
        assert Settings(_env_file=None).default_style == "apa"

    def test_get_settings_cached(self) -> None:
        """Test that get_settings returns one shared instance."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()
