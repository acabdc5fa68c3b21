"""
Local mirror files and the in-memory TTL cache
"""
import json

from careboard.core import config
from careboard.database import storage
from careboard.database.cache import TTLCache, get_records_cache


def test_save_and_get_patients(temp_data_dir):
    """Test saving the mirror writes a versioned file per owner key"""
    records = [{"id": "p-1", "name": "한지민"}]
    storage.save_patients(records, "clinic")

    path = temp_data_dir / "patients" / f"clinic.v{config.CACHE_VERSION}.json"
    assert path.exists()
    with open(path, encoding="utf-8") as f:
        assert json.load(f) == records

    get_records_cache().clear()
    assert storage.get_patients("clinic") == records
    assert storage.get_patients("other") == []


def test_get_patients_uses_cache(temp_data_dir):
    """Test reads are served from memory after the first load"""
    storage.save_patients([{"id": "p-1"}], "clinic")
    storage.cache_path("clinic").unlink()
    assert storage.get_patients("clinic") == [{"id": "p-1"}]


def test_unreadable_mirror_is_empty(temp_data_dir):
    """Test a corrupt mirror file reads as no records"""
    path = storage.cache_path("clinic")
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")
    assert storage.get_patients("clinic") == []


def test_delete_patients(temp_data_dir):
    """Test dropping the mirror removes the file and cached copy"""
    storage.save_patients([{"id": "p-1"}], "clinic")
    storage.delete_patients("clinic")
    assert not storage.cache_path("clinic").exists()
    assert storage.get_patients("clinic") == []


def test_cleanup_stale_cache(temp_data_dir):
    """Test mirrors from other cache versions of the same owner are removed"""
    directory = temp_data_dir / "patients"
    directory.mkdir(parents=True)
    stale = directory / "clinic.v11.json"
    current = directory / f"clinic.v{config.CACHE_VERSION}.json"
    other_owner = directory / "other.v11.json"
    for path in (stale, current, other_owner):
        path.write_text("[]", encoding="utf-8")

    removed = storage.cleanup_stale_cache("clinic")

    assert removed == [stale]
    assert not stale.exists()
    assert current.exists()
    assert other_owner.exists()


def test_cleanup_without_directory(temp_data_dir):
    """Test cleanup is a no-op before anything was mirrored"""
    assert storage.cleanup_stale_cache("clinic") == []


def test_ttl_cache_expiry():
    """Test entries expire after their TTL"""
    cache = TTLCache(ttl_seconds=0)
    cache.set("key", "value")
    assert cache.get("key") is None

    cache = TTLCache(ttl_seconds=60)
    cache.set("key", "value")
    assert cache.get("key") == "value"
    cache.invalidate("key")
    assert cache.get("key") is None


def test_ttl_cache_get_or_load():
    """Test the loader runs only on a miss"""
    cache = TTLCache(ttl_seconds=60)
    calls = []

    def loader():
        calls.append(1)
        return ["loaded"]

    assert cache.get_or_load("key", loader) == ["loaded"]
    assert cache.get_or_load("key", loader) == ["loaded"]
    assert len(calls) == 1
