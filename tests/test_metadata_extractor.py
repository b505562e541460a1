import struct
import subprocess
from types import SimpleNamespace

import pytest
from mutagen.flac import FLAC, Picture
from mutagen.id3 import APIC, ID3, TIT2

import metadata_extractor
from errors import MetadataExtractionError
from metadata_extractor import (
    EmbeddedPicture,
    TagInfo,
    build_metadata,
    cover_extension,
    extract_metadata,
    extract_picture,
    parse_year,
    probe_media,
    save_cover,
)

PROBE = {
    "format": {
        "format_long_name": "MP2/3 (MPEG audio layer 2/3)",
        "duration": "215.123456",
        "bit_rate": "320000",
        "size": "8605000",
        "tags": {"title": "Probe Title", "date": "2019"},
    },
    "streams": [
        {"codec_type": "video", "codec_name": "mjpeg"},
        {"codec_type": "audio", "codec_name": "mp3", "sample_rate": "44100", "channels": 2},
    ],
}


def test_build_metadata_prefers_tags_then_probe():
    tags = TagInfo(title="Tag Title", artist="Artist", album="Album", genre=["Jazz", "Bop"], year=1959)

    meta = build_metadata(PROBE, tags, "/covers/c.jpg")

    assert meta == {
        "title": "Tag Title",
        "artist": "Artist",
        "album": "Album",
        "genre": "Jazz",
        "year": 1959,
        "bitrate": 320000,
        "duration": 215.12,
        "codec": "mp3",
        "sampleRate": 44100,
        "channels": 2,
        "formatName": "MP2/3 (MPEG audio layer 2/3)",
        "size": 8605000,
        "coverUrl": "/covers/c.jpg",
    }


def test_build_metadata_placeholders_and_probe_tag_fallbacks():
    meta = build_metadata(PROBE, TagInfo())

    assert meta["title"] == "Probe Title"
    assert meta["artist"] == "Unknown Artist"
    assert meta["album"] == "Unknown Album"
    assert meta["genre"] == "Unknown"
    assert meta["year"] == "2019"
    assert meta["coverUrl"] is None


def test_build_metadata_falls_back_to_mutagen_info():
    tags = TagInfo(length=61.4567, bitrate=191872, sample_rate=48000, channels=1,
                   codec="mp4a.40.2", container="MP4")

    meta = build_metadata({}, tags)

    assert meta["title"] == "Untitled"
    assert meta["duration"] == 61.46
    assert meta["bitrate"] == 191872
    assert meta["sampleRate"] == 48000
    assert meta["channels"] == 1
    assert meta["codec"] == "mp4a.40.2"
    assert meta["formatName"] == "MP4"
    assert meta["size"] is None
    assert meta["year"] is None


def test_build_metadata_without_any_source():
    meta = build_metadata({}, TagInfo())

    assert meta["codec"] == "Unknown"
    assert meta["duration"] is None
    assert meta["bitrate"] is None


@pytest.mark.parametrize("raw,expected", [("2020-01-01", 2020), ("1999", 1999), ("", None), (None, None), ("n/a", None)])
def test_parse_year(raw, expected):
    assert parse_year(raw) == expected


def test_extract_picture_from_id3_apic():
    tags = ID3()
    tags.add(TIT2(encoding=3, text=["x"]))
    tags.add(APIC(encoding=3, mime="image/png", type=3, desc="Cover", data=b"\x89PNG"))

    picture = extract_picture(SimpleNamespace(tags=tags))

    assert picture == EmbeddedPicture("image/png", b"\x89PNG")


def test_extract_picture_none_without_art():
    assert extract_picture(SimpleNamespace(tags=ID3())) is None
    assert extract_picture(SimpleNamespace(tags=None)) is None
    assert extract_picture(None) is None


def test_extract_picture_prefers_flac_pictures():
    pic = SimpleNamespace(mime="image/jpeg", data=b"jpg")
    audio = SimpleNamespace(pictures=[pic], tags=None)

    assert extract_picture(audio) == EmbeddedPicture("image/jpeg", b"jpg")


@pytest.mark.parametrize("mime,ext", [("image/png", "png"), ("image/jpeg", "jpeg"), ("", "jpg"), (None, "jpg")])
def test_cover_extension(mime, ext):
    assert cover_extension(mime) == ext


def test_save_cover_writes_file_and_returns_url(tmp_path):
    url = save_cover(EmbeddedPicture("image/png", b"data"), tmp_path / "covers")

    assert url.startswith("/covers/cover_")
    assert url.endswith(".png")
    saved = tmp_path / "covers" / url.rsplit("/", 1)[1]
    assert saved.read_bytes() == b"data"


def test_probe_media_missing_binary(monkeypatch):
    def fake_run(*args, **kwargs):
        raise FileNotFoundError("ffprobe")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(MetadataExtractionError):
        probe_media("song.mp3")


def test_probe_media_timeout(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(MetadataExtractionError):
        probe_media("song.mp3", timeout=1)


def test_probe_media_parses_json(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        return SimpleNamespace(returncode=0, stdout='{"format": {"duration": "1.0"}}', stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    assert probe_media("song.mp3", ffprobe_path="/opt/ffprobe") == {"format": {"duration": "1.0"}}
    assert seen["cmd"][0] == "/opt/ffprobe"
    assert "-show_streams" in seen["cmd"]


def test_probe_media_nonzero_exit(monkeypatch):
    monkeypatch.setattr(subprocess, "run",
                        lambda cmd, **kw: SimpleNamespace(returncode=1, stdout="", stderr="Invalid data"))

    with pytest.raises(MetadataExtractionError):
        probe_media("song.mp3")


def test_extract_metadata_saves_cover_and_removes_upload(tmp_path, monkeypatch):
    upload = tmp_path / "upload.mp3"
    upload.write_bytes(b"audio")
    covers = tmp_path / "covers"

    monkeypatch.setattr(metadata_extractor, "probe_media", lambda *a, **kw: PROBE)
    monkeypatch.setattr(metadata_extractor, "read_tags",
                        lambda path: TagInfo(title="T", picture=EmbeddedPicture("image/jpeg", b"img")))

    meta = extract_metadata(upload, covers)

    assert meta["title"] == "T"
    assert meta["coverUrl"].startswith("/covers/")
    assert len(list(covers.iterdir())) == 1
    assert not upload.exists()


def test_extract_metadata_failure_still_removes_upload(tmp_path, monkeypatch):
    upload = tmp_path / "upload.mp3"
    upload.write_bytes(b"audio")

    def broken_probe(*args, **kwargs):
        raise MetadataExtractionError("ffprobe failed")

    monkeypatch.setattr(metadata_extractor, "probe_media", broken_probe)

    with pytest.raises(MetadataExtractionError) as excinfo:
        extract_metadata(upload, tmp_path / "covers")

    assert str(excinfo.value) == "Failed to extract metadata"
    assert not upload.exists()


def test_read_tags_on_unrecognised_file(tmp_path):
    junk = tmp_path / "notes.txt"
    junk.write_text("not audio")

    assert metadata_extractor.read_tags(junk) == TagInfo()


def _write_flac(path, seconds=2, sample_rate=44100, channels=2):
    """A header-only FLAC: STREAMINFO and no audio frames"""
    total_samples = seconds * sample_rate
    packed = (sample_rate << 44) | ((channels - 1) << 41) | (15 << 36) | total_samples
    streaminfo = (
        struct.pack(">HH", 4096, 4096) + b"\x00" * 6
        + struct.pack(">Q", packed)
        + b"\x00" * 16
    )
    path.write_bytes(b"fLaC" + bytes([0x80, 0, 0, len(streaminfo)]) + streaminfo)
    return path


def test_read_tags_on_tagged_flac(tmp_path):
    path = _write_flac(tmp_path / "song.flac")
    audio = FLAC(path)
    audio.add_tags()
    audio["title"] = "So What"
    audio["artist"] = "Miles Davis"
    audio["album"] = "Kind of Blue"
    audio["genre"] = ["Jazz", "Bop"]
    audio["date"] = "1959-08-17"
    picture = Picture()
    picture.type = 3
    picture.mime = "image/png"
    picture.data = b"\x89PNGcover"
    audio.add_picture(picture)
    audio.save()

    tags = metadata_extractor.read_tags(path)

    assert tags.title == "So What"
    assert tags.artist == "Miles Davis"
    assert tags.album == "Kind of Blue"
    assert tags.genre == ["Jazz", "Bop"]
    assert tags.year == 1959
    assert tags.picture == EmbeddedPicture("image/png", b"\x89PNGcover")
    assert tags.length == pytest.approx(2.0)
    assert tags.sample_rate == 44100
    assert tags.channels == 2
    assert tags.bitrate is None
    assert tags.codec is None
    assert tags.container == "FLAC"


def test_read_tags_year_falls_back_to_year_tag(tmp_path):
    path = _write_flac(tmp_path / "song.flac", seconds=1, channels=1)
    audio = FLAC(path)
    audio.add_tags()
    audio["year"] = "1964"
    audio.save()

    tags = metadata_extractor.read_tags(path)

    assert tags.year == 1964
    assert tags.title is None
    assert tags.genre == []
    assert tags.picture is None
    assert tags.channels == 1
