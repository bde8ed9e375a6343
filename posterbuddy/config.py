"""Configuration: env, store backend selection, rotation and upload tuning."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from posterbuddy.models.poster import DEFAULT_CYCLE_SPEED

# Base paths (project root = parent of posterbuddy package)
BASE_DIR = Path(__file__).resolve().parent.parent

STORE_BACKENDS = ("memory", "json", "firestore")
UPLOAD_MISSING_POLICIES = ("report", "discard")

FIRESTORE_DEFAULT_ENDPOINT = "https://firestore.googleapis.com"
EMULATOR_TOKEN = "owner"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float, minimum: Optional[float] = None) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    if minimum is not None and parsed < minimum:
        return default
    return parsed


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_choice(name: str, choices: Tuple[str, ...], default: str) -> str:
    value = os.getenv(name, default).strip().lower()
    return value if value in choices else default


def _firestore_endpoint() -> str:
    explicit = os.getenv("POSTERBUDDY_FIRESTORE_ENDPOINT")
    if explicit:
        return explicit.rstrip("/")
    emulator = os.getenv("FIRESTORE_EMULATOR_HOST")
    if emulator:
        return f"http://{emulator}"
    return FIRESTORE_DEFAULT_ENDPOINT


def _firestore_token() -> str:
    token = os.getenv("POSTERBUDDY_FIRESTORE_TOKEN")
    if token:
        return token
    # The emulator treats "owner" as an admin credential that bypasses security rules
    return EMULATOR_TOKEN if os.getenv("FIRESTORE_EMULATOR_HOST") else ""


@dataclass(frozen=True)
class AppConfig:
    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: Tuple[str, ...] = ("*",)

    # Store
    store_backend: str = "json"
    data_dir: Path = BASE_DIR / "data"
    posters_filename: str = "posters.json"
    firestore_project: str = ""
    firestore_database: str = "(default)"
    firestore_endpoint: str = FIRESTORE_DEFAULT_ENDPOINT
    firestore_token: str = ""
    http_connect_timeout: float = 4.0
    http_read_timeout: float = 15.0
    http_retry_total: int = 3
    http_backoff_factor: float = 0.5
    seed_samples: bool = False

    # Rotation and sync
    default_cycle_speed: float = DEFAULT_CYCLE_SPEED
    poll_interval_sec: float = 10.0
    retry_max_interval_sec: float = 120.0
    follow_new_posters: bool = False

    # Bulk upload
    upload_missing_policy: str = "report"
    upload_workers: int = 4

    @property
    def posters_path(self) -> Path:
        return self.data_dir / self.posters_filename

    def ensure_data_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)


def load_config(env_file: Optional[Path] = None) -> AppConfig:
    """Read AppConfig from the environment, after loading .env from the project root."""
    load_dotenv(env_file or BASE_DIR / ".env")
    origins = os.getenv("POSTERBUDDY_CORS_ORIGINS", "*")
    data_dir = os.getenv("POSTERBUDDY_DATA_DIR")
    return AppConfig(
        api_host=os.getenv("POSTERBUDDY_API_HOST", "0.0.0.0"),
        api_port=_env_int("POSTERBUDDY_API_PORT", 8000),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        store_backend=_env_choice("POSTERBUDDY_STORE", STORE_BACKENDS, "json"),
        data_dir=Path(data_dir) if data_dir else BASE_DIR / "data",
        firestore_project=os.getenv("POSTERBUDDY_FIRESTORE_PROJECT", ""),
        firestore_database=os.getenv("POSTERBUDDY_FIRESTORE_DATABASE", "(default)"),
        firestore_endpoint=_firestore_endpoint(),
        firestore_token=_firestore_token(),
        http_connect_timeout=_env_float("POSTERBUDDY_HTTP_CONNECT_TIMEOUT", 4.0, minimum=0.5),
        http_read_timeout=_env_float("POSTERBUDDY_HTTP_READ_TIMEOUT", 15.0, minimum=1.0),
        http_retry_total=max(0, _env_int("POSTERBUDDY_HTTP_RETRY_TOTAL", 3)),
        http_backoff_factor=_env_float("POSTERBUDDY_HTTP_BACKOFF_FACTOR", 0.5, minimum=0.0),
        seed_samples=_env_bool("POSTERBUDDY_SEED_SAMPLES"),
        default_cycle_speed=_env_float(
            "POSTERBUDDY_DEFAULT_CYCLE_SPEED", DEFAULT_CYCLE_SPEED, minimum=0.1
        ),
        poll_interval_sec=_env_float("POSTERBUDDY_POLL_INTERVAL", 10.0, minimum=0.1),
        retry_max_interval_sec=_env_float("POSTERBUDDY_RETRY_MAX_INTERVAL", 120.0, minimum=0.1),
        follow_new_posters=_env_bool("POSTERBUDDY_FOLLOW_NEW_POSTERS"),
        upload_missing_policy=_env_choice(
            "POSTERBUDDY_UPLOAD_MISSING", UPLOAD_MISSING_POLICIES, "report"
        ),
        upload_workers=max(1, _env_int("POSTERBUDDY_UPLOAD_WORKERS", 4)),
    )
