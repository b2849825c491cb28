"""
Negotiation storage abstraction.

Stores hold raw JSON documents keyed by negotiation id. Migration and
validation happen in NegotiationManager, so a store never needs to know
the schema version it is holding.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class NegotiationStore(Protocol):
    """
    Abstract storage interface for negotiation documents.

    Implementations:
    - JsonNegotiationStore: File-based persistence (production)
    - MemoryNegotiationStore: In-memory storage (testing)
    """

    def get(self, negotiation_id: str) -> dict | None:
        """Raw document by ID. Returns None if not found."""
        ...

    def set(self, negotiation_id: str, document: dict) -> None:
        """Replace the stored document."""
        ...

    def delete(self, negotiation_id: str) -> bool:
        """Delete a negotiation. Returns True if deleted."""
        ...

    def exists(self, negotiation_id: str) -> bool:
        ...

    def list_all(self) -> list[dict]:
        """List all negotiations with metadata."""
        ...


def _summarize(negotiation_id: str, document: dict, updated_at: datetime) -> dict:
    resolution = document.get("resolution")
    status = resolution.get("status", "notStarted") if isinstance(resolution, dict) else "notStarted"
    participants = document.get("participants")
    return {
        "id": negotiation_id,
        "title": document.get("title") or "Negotiation",
        "status": status,
        "participants": len(participants) if isinstance(participants, list) else 0,
        "updated_at": updated_at,
    }


class JsonNegotiationStore:
    """
    File-based negotiation storage, one JSON file per negotiation.

    The previous file is kept as <id>.json.bak on every overwrite.
    """

    def __init__(self, negotiations_dir: Path | str = "negotiations"):
        self.negotiations_dir = Path(negotiations_dir)
        self.negotiations_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, negotiation_id: str) -> Path:
        return self.negotiations_dir / f"{negotiation_id}.json"

    def get(self, negotiation_id: str) -> dict | None:
        path = self._path(negotiation_id)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Unreadable negotiation file {path.name}: {e}")
            return None

    def set(self, negotiation_id: str, document: dict) -> None:
        """Write document, backing up the previous save."""
        path = self._path(negotiation_id)
        if path.exists():
            backup = path.with_suffix(".json.bak")
            backup.write_text(path.read_text(encoding="utf-8"), encoding="utf-8")
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")

    def delete(self, negotiation_id: str) -> bool:
        path = self._path(negotiation_id)
        if path.exists():
            path.unlink()
            return True
        return False

    def exists(self, negotiation_id: str) -> bool:
        return self._path(negotiation_id).exists()

    def list_all(self) -> list[dict]:
        """All negotiations, most recently written first."""
        negotiations = []
        for f in sorted(
            self.negotiations_dir.glob("*.json"),
            key=lambda x: x.stat().st_mtime,
            reverse=True,
        ):
            # Config and other dotfiles share the directory
            if f.name.startswith("."):
                continue
            try:
                document = json.loads(f.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                continue
            if not isinstance(document, dict):
                continue
            negotiations.append(_summarize(f.stem, document, datetime.fromtimestamp(f.stat().st_mtime)))
        return negotiations


class MemoryNegotiationStore:
    """
    In-memory negotiation storage for testing.

    Documents are copied in and out through JSON so callers can never
    share a live dict with the store.
    """

    def __init__(self):
        self.documents: dict[str, str] = {}
        self.updated: dict[str, datetime] = {}

    def get(self, negotiation_id: str) -> dict | None:
        raw = self.documents.get(negotiation_id)
        return json.loads(raw) if raw is not None else None

    def set(self, negotiation_id: str, document: dict) -> None:
        self.documents[negotiation_id] = json.dumps(document)
        self.updated[negotiation_id] = datetime.now()

    def delete(self, negotiation_id: str) -> bool:
        if negotiation_id in self.documents:
            del self.documents[negotiation_id]
            self.updated.pop(negotiation_id, None)
            return True
        return False

    def exists(self, negotiation_id: str) -> bool:
        return negotiation_id in self.documents

    def list_all(self) -> list[dict]:
        negotiations = [
            _summarize(nid, json.loads(raw), self.updated[nid])
            for nid, raw in self.documents.items()
        ]
        negotiations.sort(key=lambda x: x["updated_at"], reverse=True)
        return negotiations

    def clear(self) -> None:
        """Clear all negotiations (test utility)."""
        self.documents.clear()
        self.updated.clear()
