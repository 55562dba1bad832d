from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, NoReturn, Sequence
import re
import shutil
import threading

import yaml

from .booking import Booking
from .errors import UnavailableError


_ROOM_FILE_RE = re.compile(r"^room_\d+\.yaml$")


def _event_row(event_type: str, payload: dict[str, Any], event_time: datetime) -> dict[str, Any]:
    return {
        "event_time": event_time.isoformat(timespec="seconds"),
        "event_type": event_type,
        "payload": payload,
    }


class InMemoryBookingStore:
    """Keeps room documents in process memory; the default store of the ledger."""

    def __init__(self, now_provider: Callable[[], datetime] | None = None) -> None:
        self._clock: Callable[[], datetime] = now_provider or datetime.now
        self._rooms: dict[int, list[dict[str, Any]]] = {}
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def load_bookings(self) -> list[Booking]:
        with self._lock:
            rows = [row for room_rows in self._rooms.values() for row in room_rows]
        return [Booking.from_dict(row) for row in rows]

    def save_room(
        self,
        room_id: int,
        bookings: Sequence[Booking],
        event_type: str,
        payload: dict[str, Any],
    ) -> None:
        rows = [booking.to_dict() for booking in bookings]
        event = dict(_event_row(event_type, payload, self._clock()), room_id=room_id)
        with self._lock:
            self._rooms[room_id] = rows
            self._events.append(event)

    def get_events(self, room_id: int | None = None) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(row) for row in self._events if room_id is None or row.get("room_id") == room_id]


class YamlBookingStore:
    """One YAML document per room, replaced atomically on every write.

    Each room document holds the room's bookings together with its event
    history, so a booking change and its audit entry land in a single
    file replacement. Store-level events (corrupted or recovered data) go to
    ``booking_events.yaml``.
    """

    def __init__(
        self,
        base_dir: str | Path = "data",
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        self.base_dir = Path(base_dir)
        self.rooms_dir = self.base_dir / "rooms"
        self.log_file = self.base_dir / "booking_events.yaml"
        self._clock: Callable[[], datetime] = now_provider or datetime.now
        self._log_lock = threading.Lock()
        self._ensure_files()

    def _ensure_files(self) -> None:
        try:
            self.rooms_dir.mkdir(parents=True, exist_ok=True)
            if not self.log_file.exists():
                self.log_file.write_text("[]\n", encoding="utf-8")
        except OSError as error:
            raise UnavailableError(f"Failed to prepare booking data directory: {self.base_dir}") from error

    def room_file(self, room_id: int) -> Path:
        return self.rooms_dir / f"room_{room_id}.yaml"

    def _room_files(self) -> list[Path]:
        return sorted(path for path in self.rooms_dir.iterdir() if _ROOM_FILE_RE.match(path.name))

    def load_bookings(self) -> list[Booking]:
        bookings: list[Booking] = []
        for path in self._room_files():
            document = self._read_room_document(path)
            for index, row in enumerate(document["bookings"]):
                if not isinstance(row, dict):
                    self._reject_corrupted_room(path, ValueError(f"row {index} is not a mapping"))
                try:
                    bookings.append(Booking.from_dict(row))
                except (KeyError, TypeError, ValueError) as error:
                    self._reject_corrupted_room(path, ValueError(f"row {index}: {error}"))
        return bookings

    def save_room(
        self,
        room_id: int,
        bookings: Sequence[Booking],
        event_type: str,
        payload: dict[str, Any],
    ) -> None:
        path = self.room_file(room_id)
        events = self._read_room_document(path)["events"] if path.exists() else []
        events.append(_event_row(event_type, payload, self._clock()))
        document = {
            "room_id": room_id,
            "bookings": [booking.to_dict() for booking in bookings],
            "events": events,
        }
        self._write_yaml(path, document)

    def get_events(self, room_id: int | None = None) -> list[dict[str, Any]]:
        if room_id is not None:
            path = self.room_file(room_id)
            if not path.exists():
                return []
            return [dict(row, room_id=room_id) for row in self._read_room_document(path)["events"]]

        events: list[dict[str, Any]] = []
        for path in self._room_files():
            document = self._read_room_document(path)
            events.extend(dict(row, room_id=document["room_id"]) for row in document["events"])
        events.sort(key=lambda row: str(row.get("event_time", "")))
        return events

    def get_store_events(self) -> list[dict[str, Any]]:
        with self._log_lock:
            return self._read_log()

    def _read_room_document(self, path: Path) -> dict[str, Any]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {"room_id": None, "bookings": [], "events": []}
        except OSError as error:
            raise UnavailableError(f"Failed to read room file: {path}") from error
        except (UnicodeDecodeError, yaml.YAMLError) as error:
            self._reject_corrupted_room(path, error)

        if payload is None:
            return {"room_id": None, "bookings": [], "events": []}
        if not isinstance(payload, dict) or not isinstance(payload.get("bookings", []), list):
            self._reject_corrupted_room(path, ValueError("room document is not a mapping with a bookings list"))

        events = payload.get("events") or []
        return {
            "room_id": payload.get("room_id"),
            "bookings": list(payload.get("bookings") or []),
            "events": [row for row in events if isinstance(row, dict)] if isinstance(events, list) else [],
        }

    def _reject_corrupted_room(self, path: Path, error: Exception) -> NoReturn:
        backup_path = self._backup(path)
        self._log_event(
            "YAML_CORRUPTED",
            {
                "file": path.name,
                "backup": backup_path.name if backup_path else None,
                "reason": str(error),
            },
        )
        raise UnavailableError(f"Room file {path.name} could not be parsed.") from error

    def _backup(self, path: Path) -> Path | None:
        timestamp = self._clock().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            shutil.copy2(path, backup_path)
        except OSError:
            return None
        return backup_path

    def _write_yaml(self, path: Path, payload: Any) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise UnavailableError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _read_log(self) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(self.log_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            return self._recover_log(error)

        if payload is None:
            return []
        if not isinstance(payload, list):
            return self._recover_log(ValueError("top-level YAML is not a list"))
        return [row for row in payload if isinstance(row, dict)]

    def _recover_log(self, error: Exception) -> list[dict[str, Any]]:
        backup_path = self._backup(self.log_file) if self.log_file.exists() else None
        recovered = [
            _event_row(
                "YAML_RECOVERED",
                {
                    "file": self.log_file.name,
                    "backup": backup_path.name if backup_path else None,
                    "reason": str(error),
                },
                self._clock(),
            )
        ]
        self._write_yaml(self.log_file, recovered)
        return recovered

    def _log_event(self, event_type: str, payload: dict[str, Any]) -> None:
        with self._log_lock:
            events = self._read_log()
            events.append(_event_row(event_type, payload, self._clock()))
            self._write_yaml(self.log_file, events)
