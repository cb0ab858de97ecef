"""
Persistence Backends — durable key-value хранилище ReserveState по token_id

Backend оперирует JSON-совместимыми документами (dict) и ничего не знает о
доменных моделях; сериализацию и контрактную валидацию выполняет ReserveStore.

Реализации:
- InMemoryBackend: процессная память (тесты, симуляции)
- JsonFileBackend: один JSON документ на токен + JSON-lines журнал сделок,
  журнал пишется до снапшота, снапшот заменяется атомарно (temp file + os.replace)
"""

import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

Document = Dict[str, Any]

_TOKEN_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,128}$")


class PersistenceBackend(Protocol):
    """Контракт persistence коллаборатора."""

    def load_state(self, token_id: str) -> Optional[Document]:
        """Последний сохранённый снапшот или None."""
        ...

    def commit(self, token_id: str, state: Document, trade: Optional[Document] = None) -> None:
        """Сохранение снапшота и (опционально) записи журнала: оба или ничего."""
        ...

    def load_trades(self, token_id: str) -> List[Document]:
        """Журнал сделок в порядке commit."""
        ...

    def list_tokens(self) -> List[str]:
        """Все известные token_id."""
        ...


class InMemoryBackend:
    """Backend в памяти процесса."""

    def __init__(self):
        self._lock = threading.Lock()
        self._states: Dict[str, Document] = {}
        self._trades: Dict[str, List[Document]] = {}

    def load_state(self, token_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._states.get(token_id)
            return dict(doc) if doc is not None else None

    def commit(self, token_id: str, state: Document, trade: Optional[Document] = None) -> None:
        with self._lock:
            self._states[token_id] = dict(state)
            if trade is not None:
                self._trades.setdefault(token_id, []).append(dict(trade))

    def load_trades(self, token_id: str) -> List[Document]:
        with self._lock:
            return [dict(t) for t in self._trades.get(token_id, [])]

    def list_tokens(self) -> List[str]:
        with self._lock:
            return sorted(self._states)


class JsonFileBackend:
    """
    Файловый backend.

    Layout:
        <root>/<token_id>.state.json    — текущий снапшот
        <root>/<token_id>.trades.jsonl  — журнал сделок (append-only)
    """

    STATE_SUFFIX = ".state.json"
    TRADES_SUFFIX = ".trades.jsonl"

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(__name__)

    def _state_path(self, token_id: str) -> Path:
        return self.root / f"{self._safe_id(token_id)}{self.STATE_SUFFIX}"

    def _trades_path(self, token_id: str) -> Path:
        return self.root / f"{self._safe_id(token_id)}{self.TRADES_SUFFIX}"

    @staticmethod
    def _safe_id(token_id: str) -> str:
        if not _TOKEN_ID_PATTERN.match(token_id):
            raise ValueError(f"token_id not usable as a file name: {token_id!r}")
        return token_id

    def load_state(self, token_id: str) -> Optional[Document]:
        path = self._state_path(token_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def commit(self, token_id: str, state: Document, trade: Optional[Document] = None) -> None:
        """
        Журнал пишется первым, снапшот последним.

        Сбой замены снапшота откатывает журнал к прежнему размеру, так что
        на диске остаётся либо старая версия целиком, либо новая целиком.
        """
        path = self._state_path(token_id)
        trades_path = self._trades_path(token_id)

        journal_size = None
        if trade is not None:
            journal_size = self._append_trade(trades_path, trade)

        try:
            self._replace_state(path, state)
        except BaseException:
            if journal_size is not None:
                os.truncate(trades_path, journal_size)
                self.logger.error(
                    f"State write for {token_id} failed, journal rolled back to {journal_size} bytes"
                )
            raise

        self.logger.debug(f"Persisted {token_id} version={state.get('version')}")

    def _append_trade(self, path: Path, trade: Document) -> int:
        """Добавление строки журнала; возвращает размер журнала до записи."""
        size = path.stat().st_size if path.exists() else 0
        line = (json.dumps(trade, sort_keys=True) + "\n").encode("utf-8")
        with open(path, "ab", buffering=0) as f:
            try:
                f.write(line)
                os.fsync(f.fileno())
            except BaseException:
                os.truncate(path, size)
                raise
        return size

    def _replace_state(self, path: Path, state: Document) -> None:
        # Атомарная замена снапшота
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def load_trades(self, token_id: str) -> List[Document]:
        """
        Журнал, согласованный со снапшотом.

        Записи с version выше сохранённой (обрыв процесса между журналом и
        снапшотом) отбрасываются; при повторе version побеждает поздняя запись.
        """
        path = self._trades_path(token_id)
        if not path.exists():
            return []
        state = self.load_state(token_id)
        limit = state.get("version") if state is not None else None

        by_version: Dict[Any, Document] = {}
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                doc = json.loads(line)
                version = doc.get("version")
                if limit is not None and version is not None and version > limit:
                    continue
                by_version[version] = doc
        return list(by_version.values())

    def list_tokens(self) -> List[str]:
        return sorted(
            p.name[: -len(self.STATE_SUFFIX)]
            for p in self.root.glob(f"*{self.STATE_SUFFIX}")
        )
