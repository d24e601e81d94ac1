from datetime import timedelta
import os

from dotenv import load_dotenv

load_dotenv()

# Base & data directories
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.getenv("SETKEEPER_DATA_DIR", os.path.join(BASE_DIR, "data"))

# Document stores
CREDENTIALS_FILE = os.path.join(DATA_DIR, "credentials.json")
TRACKS_FILE = os.path.join(DATA_DIR, "tracks.json")
COLLECTIONS_FILE = os.path.join(DATA_DIR, "collections.json")
TEMP_PLAYLISTS_FILE = os.path.join(DATA_DIR, "temp_playlists.json")

# Spotify credentials (REQUIRED)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET")
SPOTIFY_REDIRECT_URI = os.getenv(
    "SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8000/auth/callback"
)

# Spotify API constants
SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_ACCOUNTS_URL = os.getenv("SPOTIFY_ACCOUNTS_URL", "https://accounts.spotify.com")
SPOTIFY_API_BASE = os.getenv("SPOTIFY_API_BASE", "https://api.spotify.com/v1")
SPOTIFY_HTTP_TIMEOUT = float(os.getenv("SPOTIFY_HTTP_TIMEOUT", "10"))

SCOPES = [
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
    "playlist-modify-private",
    "playlist-modify-public",
]

# Token lifecycle
TOKEN_REFRESH_MARGIN_MS = 60_000
OAUTH_STATE_TTL = timedelta(minutes=10)

# Track metadata cache
TRACK_CACHE_TTL = timedelta(days=7)
HYDRATE_BATCH_SIZE = 50
RATE_LIMIT_MAX_WAIT = 5.0

# Sets
MAX_SET_IMAGES = 5
MAX_SET_NAME_LENGTH = 120
MAX_SET_DESCRIPTION_LENGTH = 500
MAX_EDIT_RETRIES = 3

# Playback queue
PLAYLIST_ADD_CHUNK = 100
TEMP_PLAYLIST_TTL = timedelta(hours=6)
TEMP_PLAYLIST_DESCRIPTION = "Temporary playlist created by Setkeeper"
