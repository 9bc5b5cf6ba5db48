"""Per-user, content-addressed TTL cache for deep search results."""

import hashlib
import json
import os
import re
import time
from pathlib import Path
from typing import Any, Callable

from models.deep_search import CacheEntry
from utils.logger import get_logger

logger = get_logger(__name__)

_SAFE_USER_RE = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_query(text: str) -> str:
    """Trim, collapse whitespace and lowercase."""
    return _WHITESPACE_RE.sub(" ", (text or "").strip()).lower()


def make_cache_key(text: str) -> str:
    """sha256 of the normalized query text. History never participates."""
    return hashlib.sha256(normalize_query(text).encode("utf-8")).hexdigest()


class ResultCache:
    """
    File-backed TTL cache namespaced by user.

    Layout is ``<root>/<user>/<ttl_class>/<sha256>.json``. Each file's mtime
    is set to the entry's creation time and expiry is evaluated lazily on
    read: an expired entry is deleted and reported as a miss. Writes go
    through a temp file and ``os.replace`` so concurrent writers simply last-
    write-wins without locks.

    Caching is an optimization only. Every I/O or decode failure is logged
    and treated as a miss (reads) or a no-op (writes).
    """

    def __init__(
        self,
        root_dir: str | Path,
        ttl_seconds: dict[str, int] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            root_dir: Directory holding all user namespaces
            ttl_seconds: TTL per class, e.g. {"search": 3600, "raw_search": 3600, "rag_context": 86400}
            clock: Returns the current epoch time; injectable for tests
        """
        self.root_dir = Path(root_dir)
        self.ttl_seconds = {"search": 3600, "raw_search": 3600, "rag_context": 86400}
        self.ttl_seconds.update(ttl_seconds or {})
        self._clock = clock

    # ---- paths ----

    def _user_dir_name(self, user_id: str) -> str:
        if _SAFE_USER_RE.match(user_id or "") and user_id not in (".", ".."):
            return user_id
        return "u_" + hashlib.sha256((user_id or "").encode("utf-8")).hexdigest()[:32]

    def _entry_path(self, user_id: str, query_text: str, ttl_class: str) -> Path:
        if ttl_class not in self.ttl_seconds:
            raise ValueError(f"Unknown TTL class: {ttl_class}")
        return (
            self.root_dir
            / self._user_dir_name(user_id)
            / ttl_class
            / f"{make_cache_key(query_text)}.json"
        )

    def _iter_entry_files(self, user_id: str | None):
        if user_id is not None:
            user_dirs = [self.root_dir / self._user_dir_name(user_id)]
        elif self.root_dir.is_dir():
            user_dirs = [p for p in self.root_dir.iterdir() if p.is_dir()]
        else:
            user_dirs = []

        for user_dir in user_dirs:
            for ttl_class in self.ttl_seconds:
                class_dir = user_dir / ttl_class
                if class_dir.is_dir():
                    for path in class_dir.glob("*.json"):
                        yield ttl_class, path

    def _is_expired(self, ttl_class: str, mtime: float) -> bool:
        return self._clock() - mtime >= self.ttl_seconds[ttl_class]

    def _remove(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove cache file {path.name}: {e}")

    # ---- public API ----

    def now(self) -> float:
        """Current time on the cache's clock."""
        return self._clock()

    def is_available(self) -> bool:
        """Whether entries can be written under the cache root (created lazily)."""
        candidate = self.root_dir
        while not candidate.exists() and candidate != candidate.parent:
            candidate = candidate.parent
        return candidate.is_dir() and os.access(candidate, os.W_OK)

    def get(self, user_id: str, query_text: str, ttl_class: str = "search") -> CacheEntry | None:
        """
        Return the live entry for (user, normalized query), or None.

        Expired or unreadable entries are removed and reported as a miss.
        """
        try:
            path = self._entry_path(user_id, query_text, ttl_class)
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(
                f"Cache read failed: {e}",
                extra={"extra_fields": {"user_id": user_id, "ttl_class": ttl_class}},
            )
            return None

        if self._is_expired(ttl_class, mtime):
            logger.info(
                "Cache entry expired",
                extra={"extra_fields": {"user_id": user_id, "ttl_class": ttl_class}},
            )
            self._remove(path)
            return None

        try:
            record = json.loads(path.read_text(encoding="utf-8"))
            payload = record["payload"]
            if not isinstance(payload, dict):
                raise ValueError("payload is not an object")
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                f"Discarding unreadable cache entry: {e}",
                extra={"extra_fields": {"user_id": user_id, "ttl_class": ttl_class}},
            )
            self._remove(path)
            return None

        return CacheEntry(
            key=path.stem,
            user_id=user_id,
            ttl_class=ttl_class,
            created_at=mtime,
            payload=payload,
        )

    def put(
        self, user_id: str, query_text: str, payload: dict[str, Any], ttl_class: str = "search"
    ) -> CacheEntry | None:
        """Store payload for (user, normalized query). Returns None if the write failed."""
        try:
            path = self._entry_path(user_id, query_text, ttl_class)
            now = self._clock()
            record = {
                "key": path.stem,
                "ttlClass": ttl_class,
                "query": normalize_query(query_text),
                "createdAt": now,
                "payload": payload,
            }
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(f"{path.stem}.{os.getpid()}.{time.monotonic_ns()}.tmp")
            tmp_path.write_text(json.dumps(record, ensure_ascii=False), encoding="utf-8")
            os.utime(tmp_path, (now, now))
            os.replace(tmp_path, path)
        except (OSError, ValueError, TypeError) as e:
            logger.error(
                f"Cache write failed: {e}",
                extra={"extra_fields": {"user_id": user_id, "ttl_class": ttl_class}},
            )
            return None

        return CacheEntry(
            key=path.stem, user_id=user_id, ttl_class=ttl_class, created_at=now, payload=payload
        )

    def delete(self, user_id: str, query_text: str, ttl_class: str = "search") -> bool:
        try:
            path = self._entry_path(user_id, query_text, ttl_class)
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.warning(f"Cache delete failed: {e}", extra={"extra_fields": {"user_id": user_id}})
            return False

    def clear(self, user_id: str | None = None) -> int:
        """Remove all entries for one user, or for everyone. Returns the count removed."""
        removed = 0
        try:
            for _, path in list(self._iter_entry_files(user_id)):
                try:
                    path.unlink()
                    removed += 1
                except FileNotFoundError:
                    continue
        except OSError as e:
            logger.error(f"Cache clear failed: {e}", extra={"extra_fields": {"user_id": user_id}})

        logger.info("Cache cleared", extra={"extra_fields": {"user_id": user_id, "removed": removed}})
        return removed

    def sweep(self, user_id: str | None = None) -> int:
        """Delete expired entries nobody re-requested. Returns the count removed."""
        removed = 0
        try:
            for ttl_class, path in list(self._iter_entry_files(user_id)):
                try:
                    if self._is_expired(ttl_class, path.stat().st_mtime):
                        path.unlink()
                        removed += 1
                except FileNotFoundError:
                    continue
        except OSError as e:
            logger.error(f"Cache sweep failed: {e}")

        if removed:
            logger.info("Cache sweep removed expired entries", extra={"extra_fields": {"removed": removed}})
        return removed

    def stats(self, user_id: str | None = None) -> dict[str, Any]:
        """Entry counts and ages for one user, or the whole cache."""
        now = self._clock()
        entry_count = 0
        expired_count = 0
        total_bytes = 0
        ages: list[float] = []
        by_ttl_class = {ttl_class: 0 for ttl_class in self.ttl_seconds}

        try:
            for ttl_class, path in self._iter_entry_files(user_id):
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    continue
                if self._is_expired(ttl_class, stat.st_mtime):
                    expired_count += 1
                    continue
                entry_count += 1
                total_bytes += stat.st_size
                by_ttl_class[ttl_class] += 1
                ages.append(max(0.0, now - stat.st_mtime))
        except OSError as e:
            logger.error(f"Cache stats failed: {e}")

        return {
            "type": "file",
            "directory": str(self.root_dir),
            "userId": user_id,
            "entryCount": entry_count,
            "expiredCount": expired_count,
            "oldestAgeSeconds": round(max(ages), 3) if ages else None,
            "newestAgeSeconds": round(min(ages), 3) if ages else None,
            "totalBytes": total_bytes,
            "byTtlClass": by_ttl_class,
            "ttlSeconds": dict(self.ttl_seconds),
        }
