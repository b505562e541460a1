import pytest

from app import create_app
from config import Settings


class FakeCatalog:
    """Stands in for SpotifyCatalogClient; set attributes to values or exceptions."""

    def __init__(self):
        self.playlists = [{"id": "pl1"}]
        self.playlist_items = []
        self.seeds = []
        self.recommended = []
        self.search_results = []
        self.releases = []
        self.calls = []

    def _answer(self, name, value, *args):
        self.calls.append((name,) + args)
        if isinstance(value, Exception):
            raise value
        return value

    def featured_playlists(self, limit=1):
        return self._answer("featured_playlists", self.playlists, limit)

    def playlist_tracks(self, playlist_id, limit):
        return self._answer("playlist_tracks", self.playlist_items, playlist_id, limit)

    def genre_seeds(self):
        return self._answer("genre_seeds", self.seeds)

    def recommendations(self, genre, limit):
        return self._answer("recommendations", self.recommended, genre, limit)

    def search_tracks(self, query, limit):
        return self._answer("search_tracks", self.search_results, query, limit)

    def new_releases(self, limit):
        return self._answer("new_releases", self.releases, limit)


@pytest.fixture
def fake_catalog():
    return FakeCatalog()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        spotify_client_id="id",
        spotify_client_secret="secret",
        storage_root=tmp_path / "storage",
        genre_cover_url_template="https://img.test/{id}.png",
    )


@pytest.fixture
def client(settings, fake_catalog):
    app = create_app(settings=settings, catalog=fake_catalog)
    app.config["TESTING"] = True
    return app.test_client()


def make_track(track_id="t1", preview="https://p.test/t1.mp3", artists=("A",), images=3, **extra):
    track = {
        "id": track_id,
        "name": f"Song {track_id}",
        "artists": [{"name": a} for a in artists],
        "album": {
            "name": "Album",
            "images": [{"url": u} for u in ["L", "M", "S"][:images]],
        },
        "preview_url": preview,
        "duration_ms": 215000,
        "external_urls": {"spotify": f"https://open.spotify.test/track/{track_id}"},
    }
    track.update(extra)
    return track
