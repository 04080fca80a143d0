"""Tests for enums and song DTO helpers."""

import pytest

from unistream.domain.dtos import Song, song_from_mapping, song_to_mapping
from unistream.domain.exceptions import (
    PlaybackUnsupportedError,
    ResolutionFailedError,
    ValidationError,
)
from unistream.domain.value_objects import AudioQuality, FeeTier, MusicSource


class TestMusicSource:
    def test_parse_is_case_insensitive(self) -> None:
        assert MusicSource.parse(" youtube ") is MusicSource.YOUTUBE

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(ValidationError, match="Unknown source"):
            MusicSource.parse("SPOTIFY")


class TestAudioQuality:
    def test_lower_tiers_best_first(self) -> None:
        assert AudioQuality.LOSSLESS.with_lower_tiers() == [
            AudioQuality.LOSSLESS,
            AudioQuality.EXHIGH,
            AudioQuality.STANDARD,
        ]
        assert AudioQuality.STANDARD.with_lower_tiers() == [AudioQuality.STANDARD]

    def test_bitrate_ceilings(self) -> None:
        assert AudioQuality.STANDARD.bitrate == 128000
        assert AudioQuality.EXHIGH.bitrate == 320000

    def test_parse_defaults_to_standard(self) -> None:
        assert AudioQuality.parse(None) is AudioQuality.STANDARD
        assert AudioQuality.parse("EXHIGH") is AudioQuality.EXHIGH

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(ValidationError):
            AudioQuality.parse("ultra")


class TestSong:
    def _song(self, source: MusicSource = MusicSource.NETEASE) -> Song:
        return Song(id="1", title="晴天", artist="周杰伦", album="叶惠美", cover_url="", source=source)

    def test_identity_is_source_and_id(self) -> None:
        """The same id from two sources is two different songs."""
        assert self._song().key != self._song(MusicSource.YOUTUBE).key
        assert self._song().key == (MusicSource.NETEASE, "1")


class TestSongMapping:
    def test_from_camel_case_wire_shape(self) -> None:
        song = song_from_mapping(
            {
                "id": 42,
                "title": "<em>Song</em>",
                "artist": "A",
                "coverUrl": "//c/x.jpg",
                "source": "youtube",
                "durationSeconds": "3:10",
                "feeTier": "subscription",
            }
        )
        assert song.id == "42"
        assert song.title == "Song"
        assert song.cover_url == "https://c/x.jpg"
        assert song.source is MusicSource.YOUTUBE
        assert song.duration_seconds == 190
        assert song.fee_tier is FeeTier.SUBSCRIPTION

    def test_unknown_source_falls_back_to_default(self) -> None:
        song = song_from_mapping({"id": "x", "title": "t", "source": "???"}, MusicSource.PLUGIN)
        assert song.source is MusicSource.PLUGIN
        assert song.artist == "Unknown"

    def test_to_mapping_round_trips_identity(self) -> None:
        song = Song(
            id="BV1xx", title="t", artist="a", album="Bilibili", cover_url="", source=MusicSource.BILIBILI
        )
        data = song_to_mapping(song)
        assert data["source"] == "BILIBILI"
        assert data["coverUrl"] == ""
        assert song_from_mapping(data).key == song.key


class TestExceptionTaxonomy:
    def test_playback_unsupported_is_a_resolution_failure(self) -> None:
        """Callers that 'skip on failure' also skip unsupported songs."""
        err = PlaybackUnsupportedError("PLUGIN", "1", "no resolver")
        assert isinstance(err, ResolutionFailedError)
        assert err.reason == "no resolver"
        assert "PLUGIN song 1" in err.message
