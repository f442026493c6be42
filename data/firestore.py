# data/firestore.py
from __future__ import annotations
import json, logging, os
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from config.settings import FirebaseCredentials, Settings
from cx_core.intents import mirror_internal_keys

logger = logging.getLogger(__name__)

AREA_FIELD = "AREA"
BATCH_LIMIT = 500  # Firestore max writes per batch


class StoreConfigError(RuntimeError):
    pass


# ---------------- value conversion ----------------
def _as_datetime(value: Any) -> Any:
    """Firestore stores datetimes only; plain dates become UTC midnight."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return value


def to_firestore(fields: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _as_datetime(v) for k, v in fields.items()}


def to_wire(value: Any) -> Any:
    """JSON-safe form of a stored value; timestamps become {_seconds, _nanoseconds}."""
    if isinstance(value, (date, datetime)):
        dt = _as_datetime(value)
        seconds = int(dt.timestamp())
        return {"_seconds": seconds, "_nanoseconds": dt.microsecond * 1000}
    if isinstance(value, dict):
        return {k: to_wire(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value


def serialize_doc(doc_id: str, data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    row = {k: to_wire(v) for k, v in (data or {}).items()}
    row["id"] = doc_id
    return row


# ---------------- firebase ----------------
def firestore_client(creds: FirebaseCredentials):
    import firebase_admin  # type: ignore
    from firebase_admin import credentials, firestore  # type: ignore

    if not firebase_admin._apps:
        cred = credentials.Certificate(creds.as_service_account())
        firebase_admin.initialize_app(cred)
    return firestore.client()


class FirestoreEquipmentStore:
    mode = "firestore"

    def __init__(self, client: Any, collection: str = "equipments"):
        self.client = client
        self.collection = collection

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestoreEquipmentStore":
        if settings.firebase is None:
            raise StoreConfigError("Firebase credentials are not configured")
        return cls(firestore_client(settings.firebase), settings.collection)

    def _col(self):
        return self.client.collection(self.collection)

    def load_all(self) -> List[Dict[str, Any]]:
        logger.info("Fetching equipment from Firestore collection %s", self.collection)
        return [serialize_doc(doc.id, doc.to_dict()) for doc in self._col().stream()]

    def update_fields(self, equipment_id: str, fields: Mapping[str, Any]) -> None:
        self._col().document(equipment_id).update(to_firestore(fields))

    def update_area(self, area: str, fields: Mapping[str, Any]) -> int:
        from google.cloud.firestore_v1.base_query import FieldFilter  # type: ignore

        docs = list(self._col().where(filter=FieldFilter(AREA_FIELD, "==", area)).stream())
        if not docs:
            return 0
        payload = to_firestore(fields)
        for i in range(0, len(docs), BATCH_LIMIT):
            batch = self.client.batch()
            for doc in docs[i:i + BATCH_LIMIT]:
                batch.update(doc.reference, payload)
            batch.commit()
        return len(docs)


# ---------------- local mock ----------------
class LocalEquipmentStore:
    """
    Equipment rows kept in a JSON file. With an `upstream` store the file acts
    as a development cache: reads come from the file when it has rows, writes
    go upstream first and are mirrored into the file.
    """

    def __init__(self, path: str, upstream: Optional[FirestoreEquipmentStore] = None):
        self.path = path
        self.upstream = upstream

    @property
    def mode(self) -> str:
        return "local+firestore" if self.upstream is not None else "local"

    def _read(self) -> Optional[List[Dict[str, Any]]]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError:
            logger.exception("Error reading mock data %s", self.path)
            return None
        if not raw.strip():
            return None
        try:
            rows = json.loads(raw)
        except json.JSONDecodeError:
            logger.exception("Mock data %s is not valid JSON", self.path)
            return None
        return rows if isinstance(rows, list) else None

    def _write(self, rows: List[Dict[str, Any]]) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump([to_wire(r) for r in rows], f, ensure_ascii=False, indent=2)

    def load_all(self) -> List[Dict[str, Any]]:
        rows = self._read()
        if rows is not None:
            logger.info("Using local mock data (%s)", self.path)
            return rows
        if self.upstream is None:
            logger.warning("No mock data at %s and no Firestore configured", self.path)
            return []
        rows = self.upstream.load_all()
        self._write(rows)
        logger.info("Cached %d equipment rows to %s", len(rows), self.path)
        return rows

    def update_fields(self, equipment_id: str, fields: Mapping[str, Any]) -> None:
        if self.upstream is not None:
            self.upstream.update_fields(equipment_id, fields)
        rows = self._read()
        if rows is None:
            if self.upstream is None:
                raise KeyError(f"Equipment {equipment_id!r} not found")
            return
        patch = mirror_internal_keys(fields)
        found = False
        for row in rows:
            if str(row.get("id")) == equipment_id:
                row.update(patch)
                found = True
        if not found and self.upstream is None:
            raise KeyError(f"Equipment {equipment_id!r} not found")
        self._write(rows)

    def update_area(self, area: str, fields: Mapping[str, Any]) -> int:
        count = None
        if self.upstream is not None:
            count = self.upstream.update_area(area, fields)
        rows = self._read()
        if rows is None:
            return count or 0
        patch = mirror_internal_keys(fields)
        matched = 0
        for row in rows:
            if str(row.get(AREA_FIELD, row.get("area")) or "") == area:
                row.update(patch)
                matched += 1
        self._write(rows)
        return count if count is not None else matched


# --- Public API ---
def get_store(settings: Settings, require_firestore: bool = False, client: Any = None):
    """
    Firestore when credentials exist (wrapped in the JSON cache in dev mode),
    otherwise the local mock file.
    """
    if settings.firebase is None and client is None:
        if require_firestore:
            raise StoreConfigError(
                "Missing Firebase configuration: set [firebase] in secrets or "
                "FIREBASE_PROJECT_ID / FIREBASE_CLIENT_EMAIL / FIREBASE_PRIVATE_KEY"
            )
        logger.warning("Firebase not configured; using local mock data at %s", settings.mock_path)
        return LocalEquipmentStore(settings.mock_path)

    remote = FirestoreEquipmentStore(client, settings.collection) if client is not None \
        else FirestoreEquipmentStore.from_settings(settings)
    if settings.is_dev:
        return LocalEquipmentStore(settings.mock_path, upstream=remote)
    return remote
