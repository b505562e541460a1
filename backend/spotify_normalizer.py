"""
Spotify Response Normalization

Maps the several upstream item shapes (track-in-playlist, recommendation
track, search track, new-release album) onto two simplified records:
NormalizedTrack and NormalizedRelease.

Functions in this module are stateless and can be used independently.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)

UNTITLED = 'Untitled'
ARTIST_SEPARATOR = ', '
MAX_GENRES = 12
DEFAULT_GENRE_COVER_TEMPLATE = 'https://placehold.co/300x300?text={name}'

# Upstream image lists run largest -> smallest; prefer the third, then
# the second, then the first
COVER_ART_PREFERENCE = (2, 1, 0)

# Shape tags for track-producing endpoints
PLAYLIST = 'playlist'
RECOMMENDATION = 'recommendation'
SEARCH = 'search'


@dataclass(frozen=True)
class NormalizedTrack:
    id: str
    title: str
    artist: str
    album: Optional[str]
    coverArt: Optional[str]
    previewUrl: str
    durationMs: Optional[float]
    externalUrl: Optional[str]

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class NormalizedRelease:
    id: str
    title: str
    artist: str
    album: Optional[str]
    coverArt: Optional[str]
    releaseDate: Optional[str]
    totalTracks: Optional[float]
    externalUrl: Optional[str]

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


# ============================================================================
# FIELD RULES
# ============================================================================

def select_cover_art(images) -> Optional[str]:
    """Pick the smallest of the first three images, or None when there are none"""
    images = images or []
    for index in COVER_ART_PREFERENCE:
        if index < len(images) and images[index] and images[index].get('url'):
            return images[index]['url']
    return None


def join_artists(artists) -> str:
    # order preserved, duplicates kept
    return ARTIST_SEPARATOR.join(a.get('name') or '' for a in (artists or []))


def pick_title(item: dict, secondary_key: str = 'title') -> str:
    return item.get('name') or item.get(secondary_key) or UNTITLED


def as_number(value):
    """
    Normalize a numeric-ish value without rounding or unit conversion

    ints stay ints, integral strings become ints, other numeric strings
    become floats; anything else (including NaN and infinities) becomes None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, float):
        try:
            return int(value)
        except (TypeError, ValueError):
            pass
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
    # not representable in JSON
    return value if math.isfinite(value) else None


def _external_url(item: dict) -> Optional[str]:
    return (item.get('external_urls') or {}).get('spotify')


# ============================================================================
# TRACK SHAPES
# ============================================================================

def _normalize_track(track: Optional[dict]) -> Optional[NormalizedTrack]:
    if not track:
        return None

    preview_url = track.get('preview_url')
    if not preview_url:
        return None

    album = track.get('album') or {}
    return NormalizedTrack(
        id=track.get('id'),
        title=pick_title(track),
        artist=join_artists(track.get('artists')),
        album=album.get('name'),
        coverArt=select_cover_art(album.get('images')),
        previewUrl=preview_url,
        durationMs=as_number(track.get('duration_ms')),
        externalUrl=_external_url(track),
    )


def normalize_playlist_item(item: Optional[dict]) -> Optional[NormalizedTrack]:
    """Playlist entries wrap the track: {'added_at': ..., 'track': {...}}"""
    if not item:
        return None
    return _normalize_track(item.get('track'))


def normalize_recommendation_track(track: Optional[dict]) -> Optional[NormalizedTrack]:
    return _normalize_track(track)


def normalize_search_track(track: Optional[dict]) -> Optional[NormalizedTrack]:
    return _normalize_track(track)


TRACK_NORMALIZERS = {
    PLAYLIST: normalize_playlist_item,
    RECOMMENDATION: normalize_recommendation_track,
    SEARCH: normalize_search_track,
}


def normalize_tracks(items: Iterable[dict], shape: str) -> List[NormalizedTrack]:
    """
    Normalize a list of raw items of one upstream shape

    Items without a preview URL are dropped; order is preserved.

    Raises:
        ValueError: If shape is not a known track shape
    """
    try:
        normalizer = TRACK_NORMALIZERS[shape]
    except KeyError:
        raise ValueError(f"Unknown track shape: {shape}")

    tracks = []
    skipped = 0
    for item in items or []:
        track = normalizer(item)
        if track is None:
            skipped += 1
            continue
        tracks.append(track)

    if skipped:
        logger.debug(f"Dropped {skipped} {shape} item(s) without a preview URL")
    return tracks


# ============================================================================
# RELEASE SHAPE
# ============================================================================

def normalize_new_release(album: dict) -> NormalizedRelease:
    """New-release albums are never filtered on preview availability"""
    return NormalizedRelease(
        id=album.get('id'),
        title=pick_title(album),
        artist=join_artists(album.get('artists')),
        album=None,
        coverArt=select_cover_art(album.get('images')),
        releaseDate=album.get('release_date'),
        totalTracks=as_number(album.get('total_tracks')),
        externalUrl=_external_url(album),
    )


def normalize_releases(albums: Iterable[dict]) -> List[NormalizedRelease]:
    return [normalize_new_release(album) for album in albums or [] if album]


# ============================================================================
# GENRES
# ============================================================================

def genre_display_name(seed: str) -> str:
    return seed.replace('-', ' ').title()


def normalize_genre(seed: str, cover_template: str = DEFAULT_GENRE_COVER_TEMPLATE) -> dict:
    name = genre_display_name(seed)
    return {
        'id': seed,
        'name': name,
        'cover': cover_template.format(name=quote(name), id=quote(seed)),
    }


def normalize_genres(seeds: Iterable[str],
                     cover_template: str = DEFAULT_GENRE_COVER_TEMPLATE) -> List[dict]:
    return [normalize_genre(seed, cover_template) for seed in list(seeds or [])[:MAX_GENRES]]
