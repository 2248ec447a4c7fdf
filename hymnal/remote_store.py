"""
Remote Document Store
Tree-structured database addressed by '/'-separated paths, with the query and
write surface of the Firebase Realtime Database.
"""

import copy
import logging
import random
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from hymnal.exceptions import RemoteUnavailableException

logger = logging.getLogger("main")

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"
_UNSET = object()


def split_path(path: str) -> List[str]:
    return [part for part in (path or "").strip("/").split("/") if part]


def join_path(*parts: str) -> str:
    segments = []
    for part in parts:
        segments.extend(split_path(str(part)))
    return "/".join(segments)


def prune(value: Any) -> Any:
    """Drop None values and empty containers, the way the remote database stores them"""
    if isinstance(value, dict):
        cleaned = {}
        for k, v in value.items():
            v = prune(v)
            if v is not None:
                cleaned[str(k)] = v
        return cleaned or None
    if isinstance(value, list):
        cleaned = [prune(v) for v in value]
        return cleaned if any(v is not None for v in cleaned) else None
    return value


def _sort_value(value):
    # Remote ordering: missing < false < true < numbers < strings < objects
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, 0)


def apply_query(value: Any, order_by: Optional[str], equal_to: Any = _UNSET) -> Any:
    """Order (and optionally filter) the children of a node by a child field"""
    if order_by is None or not isinstance(value, (dict, list)):
        return value
    children = value.items() if isinstance(value, dict) else ((str(i), v) for i, v in enumerate(value) if v is not None)

    def field_of(child):
        return child.get(order_by) if isinstance(child, dict) else None

    rows = list(children)
    if equal_to is not _UNSET:
        rows = [(k, v) for k, v in rows if field_of(v) == equal_to]
    rows.sort(key=lambda kv: (_sort_value(field_of(kv[1])), kv[0]))
    return {k: v for k, v in rows}


def generate_push_id(now_ms: Optional[int] = None) -> str:
    """Chronologically ordered 20 character key"""
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    stamp = []
    for _ in range(8):
        stamp.append(PUSH_CHARS[now_ms % 64])
        now_ms //= 64
    suffix = "".join(random.choice(PUSH_CHARS) for _ in range(12))
    return "".join(reversed(stamp)) + suffix


class Snapshot:
    """Immutable view of a node's value at read time"""

    def __init__(self, key: Optional[str], value: Any):
        self.key = key
        self.value = value

    @property
    def exists(self) -> bool:
        return self.value is not None

    def child(self, path: str) -> "Snapshot":
        node = self.value
        parts = split_path(path)
        for part in parts:
            if isinstance(node, dict):
                node = node.get(part)
            elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
                node = node[int(part)]
            else:
                node = None
                break
        return Snapshot(parts[-1] if parts else self.key, node)

    def children(self) -> List["Snapshot"]:
        if isinstance(self.value, dict):
            return [Snapshot(k, v) for k, v in self.value.items()]
        if isinstance(self.value, list):
            return [Snapshot(str(i), v) for i, v in enumerate(self.value) if v is not None]
        return []

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.value, dict):
            return dict(self.value)
        if isinstance(self.value, list):
            return {str(i): v for i, v in enumerate(self.value) if v is not None}
        return {}

    def __repr__(self):
        return f"Snapshot(key={self.key!r}, exists={self.exists})"


class DocumentRef:
    """Reference to a path, optionally carrying an orderByChild/equalTo query"""

    def __init__(self, store: "RemoteDocumentStore", path: str, order_by: Optional[str] = None, equal_to: Any = _UNSET):
        self.store = store
        self.path = join_path(path)
        self._order_by = order_by
        self._equal_to = equal_to

    @property
    def key(self) -> Optional[str]:
        parts = split_path(self.path)
        return parts[-1] if parts else None

    @property
    def parent(self) -> Optional["DocumentRef"]:
        parts = split_path(self.path)
        if not parts:
            return None
        return DocumentRef(self.store, "/".join(parts[:-1]))

    def child(self, path: str) -> "DocumentRef":
        return DocumentRef(self.store, join_path(self.path, path))

    def order_by_child(self, field: str) -> "DocumentRef":
        return DocumentRef(self.store, self.path, order_by=field, equal_to=self._equal_to)

    def equal_to(self, value: Any) -> "DocumentRef":
        if self._order_by is None:
            raise ValueError("equal_to requires order_by_child")
        return DocumentRef(self.store, self.path, order_by=self._order_by, equal_to=value)

    def get(self) -> Snapshot:
        if self._order_by is not None:
            value = self.store.query(self.path, self._order_by, self._equal_to)
        else:
            value = self.store.read(self.path)
        return Snapshot(self.key, value)

    def set(self, value: Any) -> None:
        self.store.write(self.path, value)

    def update(self, values: Dict[str, Any]) -> None:
        self.store.update(self.path, values)

    def remove(self) -> None:
        self.store.delete(self.path)

    def transaction(self, fn: Callable[[Any], Any], max_attempts: int = 25) -> Any:
        """Atomically replace the node with fn(current); None deletes it"""
        return self.store.transaction(self.path, fn, max_attempts=max_attempts)

    def push(self, value: Any = _UNSET) -> "DocumentRef":
        ref = self.child(generate_push_id())
        if value is not _UNSET:
            ref.set(value)
        return ref

    def __repr__(self):
        return f"DocumentRef({self.path!r})"


class RemoteDocumentStore(ABC):
    """Backend contract; repositories only talk to DocumentRef"""

    def ref(self, path: str = "") -> DocumentRef:
        return DocumentRef(self, path)

    @abstractmethod
    def read(self, path: str) -> Any:
        pass

    def query(self, path: str, order_by: str, equal_to: Any = _UNSET) -> Any:
        return apply_query(self.read(path), order_by, equal_to)

    @abstractmethod
    def write(self, path: str, value: Any) -> None:
        pass

    @abstractmethod
    def update(self, path: str, values: Dict[str, Any]) -> None:
        pass

    def delete(self, path: str) -> None:
        self.write(path, None)

    @abstractmethod
    def transaction(self, path: str, fn: Callable[[Any], Any], max_attempts: int = 25) -> Any:
        pass


class InMemoryDocumentStore(RemoteDocumentStore):
    """Process-local tree, used for development, offline operation and tests"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._root: Dict[str, Any] = prune(copy.deepcopy(initial)) or {}
        self._lock = threading.RLock()
        self._offline = False
        self.reads = 0
        self.writes = 0

    def set_offline(self, offline: bool = True) -> None:
        self._offline = offline
        logger.info(f"In-memory remote store {'offline' if offline else 'online'}")

    def _check_online(self, path):
        if self._offline:
            raise RemoteUnavailableException("Remote store is offline", path=path)

    def _get_node(self, parts):
        node = self._root
        for part in parts:
            if isinstance(node, dict):
                node = node.get(part)
            elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
                node = node[int(part)]
            else:
                return None
            if node is None:
                return None
        return node

    def _set_node(self, parts, value):
        value = prune(copy.deepcopy(value))
        if not parts:
            self._root = value if isinstance(value, dict) else {}
            return
        node = self._root
        trail = []
        for part in parts[:-1]:
            child = node.get(part)
            if isinstance(child, list):
                child = {str(i): v for i, v in enumerate(child) if v is not None}
                node[part] = child
            elif not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            trail.append((node, part))
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value
        # Empty parents disappear like in the remote database
        for parent, part in reversed(trail):
            if parent.get(part):
                break
            parent.pop(part, None)

    def read(self, path):
        with self._lock:
            self._check_online(path)
            self.reads += 1
            return copy.deepcopy(self._get_node(split_path(path)))

    def write(self, path, value):
        with self._lock:
            self._check_online(path)
            self.writes += 1
            self._set_node(split_path(path), value)

    def update(self, path, values):
        with self._lock:
            self._check_online(path)
            self.writes += 1
            base = split_path(path)
            for key, value in values.items():
                self._set_node(base + split_path(key), value)

    def transaction(self, path, fn, max_attempts=25):
        with self._lock:
            self._check_online(path)
            parts = split_path(path)
            current = copy.deepcopy(self._get_node(parts))
            new_value = prune(fn(current))
            self.writes += 1
            self._set_node(parts, new_value)
            return copy.deepcopy(new_value)

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._root)


def create_remote_store(settings: dict) -> RemoteDocumentStore:
    """Build the configured remote store backend"""
    config = settings.get("remote", {})
    backend = config.get("backend", "memory")
    if backend == "firebase":
        from hymnal.firebase_rest import FirebaseRestStore

        return FirebaseRestStore(
            config.get("database_url", ""),
            auth_token=config.get("auth_token") or None,
            timeout=config.get("timeout", 10),
        )
    logger.info("Remote store using in-memory backend")
    return InMemoryDocumentStore()
