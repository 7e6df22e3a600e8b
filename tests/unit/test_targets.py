"""
Unit tests for stream targets and URL validation.
"""

import logging

import pytest

from streamkeeper.config import SecurityConfig
from streamkeeper.playback.targets import Target, TargetValidator


@pytest.mark.unit
class TestTarget:
    """Tests for Target."""

    def test_display_name_falls_back_to_id(self):
        assert Target(id="nmtv_uk", uri="https://x.wowza.com/a.m3u8").display_name == "nmtv_uk"
        assert Target(id="nmtv_uk", uri="u", name="NMTV UK").display_name == "NMTV UK"

    def test_to_dict_omits_uri(self):
        target = Target(id="a", uri="https://cdn3.wowza.com/secret-token/playlist.m3u8", name="A")

        data = target.to_dict()

        assert data == {"id": "a", "name": "A", "is_default": False}
        assert "secret-token" not in str(data)

    def test_targets_are_immutable(self):
        target = Target(id="a", uri="https://cdn3.wowza.com/a.m3u8")

        with pytest.raises(Exception):
            target.uri = "https://evil.example.com/"


@pytest.mark.unit
class TestTargetValidator:
    """Tests for TargetValidator."""

    @pytest.fixture
    def validator(self) -> TargetValidator:
        return TargetValidator.from_config(SecurityConfig())

    @pytest.mark.parametrize(
        "uri",
        [
            "https://cdn3.wowza.com/5/abc/live/playlist.m3u8",
            "https://wowza.com/live.m3u8",
            "https://live.nmtv.tv/stream.m3u8",
            "HTTPS://CDN3.WOWZA.COM/live.m3u8",
        ],
    )
    def test_accepts_allow_listed_https(self, validator, uri):
        assert validator.is_valid(uri) is True

    @pytest.mark.parametrize(
        "uri",
        [
            "http://cdn3.wowza.com/live.m3u8",
            "ftp://cdn3.wowza.com/live.m3u8",
            "https://evil.example.com/live.m3u8",
            "https://notwowza.com/live.m3u8",
            "https://wowza.com.evil.example/live.m3u8",
            "https:///live.m3u8",
            "not a url",
            "",
            None,
        ],
    )
    def test_rejects_everything_else(self, validator, uri):
        assert validator.is_valid(uri) is False

    def test_rejects_non_string(self, validator):
        assert validator.is_valid(12345) is False

    def test_unparseable_url_is_invalid(self, validator):
        assert validator.is_valid("https://[::1/live.m3u8") is False

    def test_empty_domain_list_allows_any_host(self):
        validator = TargetValidator(allowed_schemes=["https"], allowed_domains=[])

        assert validator.is_valid("https://anything.example.org/live.m3u8") is True
        assert validator.is_valid("http://anything.example.org/live.m3u8") is False

    def test_uri_is_never_logged(self, validator, caplog):
        caplog.set_level(logging.DEBUG)

        validator.is_valid("https://evil.example.com/token=hunter2")

        assert "hunter2" not in caplog.text
        assert "domain not whitelisted" in caplog.text
