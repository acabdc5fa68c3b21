"""
Local JSON mirror of the hosted patient table

- One JSON file per owner key, versioned so layout changes can drop old mirrors
- In-memory cache with TTL reduces file I/O for frequently read data
- Records are stored in their JSON form (Patient.model_dump(mode="json"))
"""
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List

from careboard.core import config
from careboard.database.cache import get_records_cache

logger = logging.getLogger(__name__)

_VERSIONED_NAME = re.compile(r"^(?P<owner>.+)\.v(?P<version>\d+)\.json$")


def read_json(filepath: Path) -> List[Dict[str, Any]]:
    """
    Read JSON file, return empty list if not found or unreadable
    """
    path = Path(filepath)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        return []
    except json.JSONDecodeError as e:
        logger.warning(f"Ignoring unreadable cache file {path}: {e}")
        return []
    return data if isinstance(data, list) else []


def write_json(filepath: Path, data: List[Dict[str, Any]]):
    """
    Write data to JSON file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def patients_dir() -> Path:
    return Path(config.DATA_DIR) / "patients"


def cache_path(owner_key: str) -> Path:
    return patients_dir() / f"{owner_key}.v{config.CACHE_VERSION}.json"


def save_patients(patients: List[Dict[str, Any]], owner_key: str):
    """
    Replace the local mirror for an owner key
    Updates the in-memory cache immediately
    """
    write_json(cache_path(owner_key), patients)
    get_records_cache().set(f"patients:{owner_key}", patients)


def get_patients(owner_key: str) -> List[Dict[str, Any]]:
    """
    Get the mirrored records for an owner key
    Uses in-memory cache to avoid repeated file reads
    """
    cached = get_records_cache().get_or_load(
        f"patients:{owner_key}",
        lambda: read_json(cache_path(owner_key)) or None,
    )
    return list(cached or [])


def delete_patients(owner_key: str):
    """
    Drop the local mirror for an owner key
    """
    get_records_cache().invalidate(f"patients:{owner_key}")
    path = cache_path(owner_key)
    if path.exists():
        path.unlink()


def cleanup_stale_cache(owner_key: str) -> List[Path]:
    """
    Remove mirror files of this owner written by other cache versions

    Returns:
        Paths that were removed
    """
    directory = patients_dir()
    if not directory.is_dir():
        return []
    removed = []
    for path in directory.glob(f"{owner_key}.v*.json"):
        match = _VERSIONED_NAME.match(path.name)
        if not match or match.group("owner") != owner_key:
            continue
        if int(match.group("version")) != config.CACHE_VERSION:
            path.unlink()
            removed.append(path)
    if removed:
        logger.info(f"Removed {len(removed)} stale cache file(s) for {owner_key}")
        get_records_cache().invalidate(f"patients:{owner_key}")
    return removed
