"""
Audio Metadata Extraction

Probes an uploaded audio file with ffprobe (container/stream info) and
mutagen (tags and embedded artwork) and merges the two into one
lightweight metadata object. Embedded cover art is written to the covers
directory and returned as a URL rather than inline data.
"""

import base64
import json
import logging
import os
import re
import subprocess
import time
import uuid
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import mutagen
from mutagen.flac import Picture as FlacPicture
from mutagen.mp4 import MP4Cover

from errors import MetadataExtractionError

logger = logging.getLogger(__name__)

COVER_URL_PREFIX = '/covers'


@dataclass(frozen=True)
class EmbeddedPicture:
    mime: str
    data: bytes


@dataclass
class TagInfo:
    """Common tags and stream info as read by mutagen"""
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: List[str] = field(default_factory=list)
    year: Optional[int] = None
    picture: Optional[EmbeddedPicture] = None
    length: Optional[float] = None
    bitrate: Optional[int] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None
    codec: Optional[str] = None
    container: Optional[str] = None


# ============================================================================
# FFPROBE
# ============================================================================

def probe_media(path, ffprobe_path='ffprobe', timeout=30) -> dict:
    """
    Run ffprobe and return its JSON output (format + streams)

    Raises:
        MetadataExtractionError: If ffprobe is missing, times out or fails
    """
    cmd = [
        ffprobe_path, '-v', 'quiet', '-print_format', 'json',
        '-show_format', '-show_streams', str(path)
    ]
    try:
        proc = subprocess.run(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, timeout=timeout
        )
    except FileNotFoundError:
        raise MetadataExtractionError(f"ffprobe not found at {ffprobe_path}")
    except subprocess.TimeoutExpired:
        raise MetadataExtractionError(f"ffprobe timed out after {timeout}s")

    if proc.returncode != 0:
        raise MetadataExtractionError(f"ffprobe failed: {proc.stderr.strip()[:400]}")

    try:
        return json.loads(proc.stdout or '{}')
    except json.JSONDecodeError as e:
        raise MetadataExtractionError(f"ffprobe returned invalid JSON: {e}")


# ============================================================================
# MUTAGEN
# ============================================================================

def _first(values) -> Optional[str]:
    if not values:
        return None
    if isinstance(values, (list, tuple)):
        values = values[0]
    value = str(values).strip()
    return value or None


def parse_year(value) -> Optional[int]:
    m = re.match(r'^\s*(\d{4})', str(value or ''))
    return int(m.group(1)) if m else None


def extract_picture(audio) -> Optional[EmbeddedPicture]:
    """First embedded picture from ID3, FLAC, Vorbis or MP4 tags"""
    if audio is None:
        return None

    # FLAC keeps pictures outside the Vorbis comment block
    for pic in getattr(audio, 'pictures', None) or []:
        return EmbeddedPicture(pic.mime or 'image/jpeg', pic.data)

    tags = getattr(audio, 'tags', None)
    if tags is None:
        return None

    if hasattr(tags, 'getall'):
        apic = tags.getall('APIC')
        if apic:
            return EmbeddedPicture(apic[0].mime or 'image/jpeg', apic[0].data)
        return None

    covers = tags.get('covr') if hasattr(tags, 'get') else None
    if covers:
        cover = covers[0]
        mime = 'image/png' if getattr(cover, 'imageformat', None) == MP4Cover.FORMAT_PNG else 'image/jpeg'
        return EmbeddedPicture(mime, bytes(cover))

    blocks = tags.get('metadata_block_picture') if hasattr(tags, 'get') else None
    if blocks:
        pic = FlacPicture(base64.b64decode(blocks[0]))
        return EmbeddedPicture(pic.mime or 'image/jpeg', pic.data)

    return None


def read_tags(path) -> TagInfo:
    """
    Read common tags, artwork and stream info with mutagen

    Files mutagen cannot identify or parse yield an empty TagInfo.
    """
    try:
        easy = mutagen.File(path, easy=True)
        audio = mutagen.File(path)
    except mutagen.MutagenError as e:
        logger.warning(f"mutagen could not read {path}: {e}")
        return TagInfo()

    if audio is None:
        logger.debug(f"mutagen did not recognise {path}")
        return TagInfo()

    text = easy.tags if easy is not None and easy.tags is not None else {}
    info = audio.info

    bitrate = getattr(info, 'bitrate', None)
    return TagInfo(
        title=_first(text.get('title')),
        artist=_first(text.get('artist')),
        album=_first(text.get('album')),
        genre=[str(g) for g in (text.get('genre') or [])],
        year=parse_year(_first(text.get('date')) or _first(text.get('year'))),
        picture=extract_picture(audio),
        length=getattr(info, 'length', None) or None,
        bitrate=round(bitrate) if bitrate else None,
        sample_rate=getattr(info, 'sample_rate', None) or None,
        channels=getattr(info, 'channels', None) or None,
        codec=getattr(info, 'codec', None),
        container=type(audio).__name__,
    )


# ============================================================================
# COVERS
# ============================================================================

def cover_extension(mime: str) -> str:
    subtype = (mime or '').split('/')[-1] if '/' in (mime or '') else ''
    subtype = re.sub(r'[^a-z0-9]', '', subtype.lower())
    return subtype or 'jpg'


def save_cover(picture: EmbeddedPicture, cover_dir) -> str:
    """Write picture bytes into cover_dir and return its public URL"""
    cover_dir = Path(cover_dir)
    cover_dir.mkdir(parents=True, exist_ok=True)

    file_name = f"cover_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.{cover_extension(picture.mime)}"
    (cover_dir / file_name).write_bytes(picture.data)
    logger.debug(f"Saved cover art: {file_name}")
    return f"{COVER_URL_PREFIX}/{file_name}"


# ============================================================================
# MERGE
# ============================================================================

def _int_or_none(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _float_or_none(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _audio_stream(probe: dict) -> dict:
    streams = probe.get('streams') or []
    for stream in streams:
        if stream.get('codec_type') == 'audio':
            return stream
    return streams[0] if streams else {}


def build_metadata(probe: dict, tags: TagInfo, cover_url: Optional[str] = None) -> dict:
    """
    Merge ffprobe output and mutagen tags into the response shape

    ffprobe wins for stream/container facts, mutagen for tags; each field
    falls back to the other source and then to a placeholder.
    """
    probe = probe or {}
    fmt = probe.get('format') or {}
    fmt_tags = {k.lower(): v for k, v in (fmt.get('tags') or {}).items()}
    stream = _audio_stream(probe)

    duration = _float_or_none(fmt.get('duration'))
    if duration is None and tags.length:
        duration = tags.length

    return {
        'title': tags.title or fmt_tags.get('title') or 'Untitled',
        'artist': tags.artist or 'Unknown Artist',
        'album': tags.album or 'Unknown Album',
        'genre': (tags.genre[0] if tags.genre else None) or 'Unknown',
        'year': tags.year or fmt_tags.get('date') or None,
        'bitrate': _int_or_none(fmt.get('bit_rate')) or tags.bitrate or None,
        'duration': round(duration, 2) if duration is not None else None,
        'codec': stream.get('codec_name') or tags.codec or 'Unknown',
        'sampleRate': _int_or_none(stream.get('sample_rate')) or tags.sample_rate,
        'channels': stream.get('channels') or tags.channels,
        'formatName': fmt.get('format_long_name') or tags.container,
        'size': _int_or_none(fmt.get('size')),
        'coverUrl': cover_url,
    }


def extract_metadata(path, cover_dir, ffprobe_path='ffprobe', ffprobe_timeout=30) -> dict:
    """
    Extract metadata from an uploaded audio file

    The uploaded file is always deleted afterwards.

    Args:
        path: Path to the uploaded audio file
        cover_dir: Directory embedded artwork is written into

    Returns:
        Metadata dict (see build_metadata)

    Raises:
        MetadataExtractionError: If the file could not be probed
    """
    try:
        probe = probe_media(path, ffprobe_path, ffprobe_timeout)
        tags = read_tags(path)

        cover_url = None
        if tags.picture is not None:
            cover_url = save_cover(tags.picture, cover_dir)

        return build_metadata(probe, tags, cover_url)
    except (MetadataExtractionError, OSError) as e:
        logger.error(f"Extraction error for {path}: {e}")
        raise MetadataExtractionError("Failed to extract metadata") from e
    finally:
        with suppress(OSError):
            os.remove(path)
