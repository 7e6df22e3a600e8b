"""
Unit tests for the channel directory.
"""

import pytest

from streamkeeper.channels import InMemoryChannelDirectory
from streamkeeper.config import StreamKeeperConfig
from streamkeeper.playback.targets import Target
from tests.fixtures import ConfigFactory, TargetFactory


@pytest.mark.unit
class TestInMemoryChannelDirectory:
    """Tests for InMemoryChannelDirectory."""

    def test_default_target(self, directory):
        assert directory.get_default_target().id == "ch1"

    def test_first_target_when_none_marked_default(self):
        directory = InMemoryChannelDirectory(TargetFactory.create_batch(2))

        assert directory.get_default_target() == directory.get_all_targets()[0]

    def test_lookup_by_id(self, directory):
        assert directory.get_target_by_id("ch2").name == "Channel Two"
        assert directory.get_target_by_id("missing") is None

    def test_next_wraps_around(self, directory):
        assert directory.get_next_target("ch0").id == "ch1"
        assert directory.get_next_target("ch2").id == "ch0"

    def test_previous_wraps_around(self, directory):
        assert directory.get_previous_target("ch1").id == "ch0"
        assert directory.get_previous_target("ch0").id == "ch2"

    def test_unknown_id_navigation(self, directory):
        assert directory.get_next_target("missing") is None
        assert directory.get_previous_target("missing") is None

    def test_single_channel_wraps_to_itself(self):
        only = Target(id="solo", uri="https://cdn3.wowza.com/solo.m3u8")
        directory = InMemoryChannelDirectory([only])

        assert directory.get_next_target("solo") == only
        assert directory.get_previous_target("solo") == only

    def test_all_targets_is_a_copy(self, directory):
        targets = directory.get_all_targets()
        targets.clear()

        assert len(directory) == 3

    def test_empty_directory_rejected(self):
        with pytest.raises(ValueError):
            InMemoryChannelDirectory([])

    def test_duplicate_ids_rejected(self):
        a = Target(id="dup", uri="https://cdn3.wowza.com/a.m3u8")
        b = Target(id="dup", uri="https://cdn3.wowza.com/b.m3u8")

        with pytest.raises(ValueError):
            InMemoryChannelDirectory([a, b])

    def test_from_config(self):
        config = ConfigFactory.create(channels=ConfigFactory.channels(3))

        directory = InMemoryChannelDirectory.from_config(config.channels)

        assert len(directory) == 3
        assert directory.get_default_target().id == "ch1"
        assert directory.get_target_by_id("ch2").uri.endswith("ch2/playlist.m3u8")

    def test_default_channels(self):
        directory = InMemoryChannelDirectory.from_config(StreamKeeperConfig().channels)

        assert [t.id for t in directory.get_all_targets()] == ["nmtv_uk", "nmtv_classics"]
        assert directory.get_default_target().id == "nmtv_uk"
