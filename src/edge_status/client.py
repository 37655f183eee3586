"""
Control-plane client interface.

The registry only talks to the control plane through this protocol.
InMemoryControlPlaneClient serves raw records from memory (or a YAML/JSON
file) for the CLI, the API and tests.
"""

from __future__ import annotations

import copy
import json
import threading
import time
from typing import Any, Protocol, runtime_checkable

import yaml

from .errors import ServiceError


@runtime_checkable
class ControlPlaneClient(Protocol):
    def fetch_identities(self) -> list[dict[str, Any]]: ...

    def set_identity_enabled(self, fingerprint: str, enabled: bool) -> dict[str, Any]: ...

    def authenticate(self, fingerprint: str, code: str) -> bool: ...


class InMemoryControlPlaneClient:
    """Serves raw identity records held in memory."""

    def __init__(self, records: list[dict[str, Any]] | None = None, mfa_codes: dict[str, str] | None = None):
        self._lock = threading.Lock()
        self.records: dict[str, dict[str, Any]] = {}
        self.mfa_codes = dict(mfa_codes or {})
        self.calls: list[tuple[str, str]] = []
        for rec in records or []:
            self.records[rec["fingerprint"]] = copy.deepcopy(rec)

    @classmethod
    def from_file(cls, path: str) -> InMemoryControlPlaneClient:
        """Load records from a YAML or JSON file with an ``identities`` list."""
        with open(path) as f:
            text = f.read()
        data = json.loads(text) if path.endswith(".json") else yaml.safe_load(text)
        if isinstance(data, dict):
            return cls(data.get("identities", []), data.get("mfa_codes"))
        return cls(data or [])

    def fetch_identities(self) -> list[dict[str, Any]]:
        with self._lock:
            self.calls.append(("fetch_identities", ""))
            return [copy.deepcopy(rec) for rec in self.records.values()]

    def set_identity_enabled(self, fingerprint: str, enabled: bool) -> dict[str, Any]:
        with self._lock:
            self.calls.append(("set_identity_enabled", fingerprint))
            rec = self.records.get(fingerprint)
            if rec is None:
                raise ServiceError("identity not found", f"no identity with fingerprint {fingerprint}")
            rec["active"] = enabled
            rec["lastUpdated"] = max(time.time(), float(rec.get("lastUpdated") or 0) + 1)
            return copy.deepcopy(rec)

    def authenticate(self, fingerprint: str, code: str) -> bool:
        with self._lock:
            self.calls.append(("authenticate", fingerprint))
            rec = self.records.get(fingerprint)
            if rec is None:
                raise ServiceError("identity not found", f"no identity with fingerprint {fingerprint}")
            expected = self.mfa_codes.get(fingerprint)
            if expected is not None and code != expected:
                return False
            rec["mfaNeeded"] = False
            return True

    # --- Test and demo helpers ---

    def upsert(self, record: dict[str, Any]) -> None:
        with self._lock:
            self.records[record["fingerprint"]] = copy.deepcopy(record)

    def remove(self, fingerprint: str) -> bool:
        with self._lock:
            return self.records.pop(fingerprint, None) is not None
