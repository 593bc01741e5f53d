"""Flask application exposing entry management and backup endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request
from loguru import logger

from .backup import BackupCodec, decode_image_base64
from .blobs import BlobStore
from .config import Settings, get_settings
from .images import ImageCodec
from .kv import KeyValueStore
from .models import Entry, new_entry_id
from .reconcile import ImportMode
from .repository import EntryRepository
from .service import BackupBusyError, BackupService

BACKUP_EXTENSION = "slbackup"

_ENTRY_FIELDS = ("name", "price", "quantity", "description", "notes", "tags", "buy_date")


def build_repository(settings: Settings) -> EntryRepository:
    return EntryRepository(
        kv=KeyValueStore(settings.store_path),
        blobs=BlobStore(settings.image_dir),
        codec=ImageCodec.from_settings(settings),
        ad_threshold=settings.ad_threshold,
    )


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or get_settings()

    app = Flask(__name__)
    app.config["APP_NAME"] = settings.app_name

    repository = build_repository(settings)
    backups = BackupService(repository, BackupCodec(repository.blobs))
    app.extensions["storage_logger"] = {"repository": repository, "backups": backups}
    logger.info(f"{settings.app_name} started with {len(repository)} entries ({settings.environment})")

    def _json_error(message: str, status: int) -> Any:
        return jsonify({"error": message}), status

    @app.get("/api/entries")
    def list_entries() -> Any:
        entries = repository.search(request.args.get("q"))
        return jsonify([entry.to_dict() for entry in entries])

    @app.get("/api/entries/<string:entry_id>")
    def get_entry(entry_id: str) -> Any:
        entry = repository.get(entry_id)
        if entry is None:
            return _json_error(f"Entry {entry_id} not found", 404)
        return jsonify(entry.to_dict())

    @app.get("/api/entries/<string:entry_id>/image")
    def get_entry_image(entry_id: str) -> Any:
        data = repository.image_bytes(entry_id)
        if data is None:
            return _json_error(f"No image for entry {entry_id}", 404)
        return Response(data, mimetype="image/jpeg")

    @app.post("/api/entries")
    def add_entry() -> Any:
        try:
            payload = _get_payload(request)
        except ValueError as exc:
            return _json_error(str(exc), 400)
        entry = Entry(id=str(payload.get("id") or "").strip() or new_entry_id(), **_entry_fields(payload))
        stored = repository.add(entry, _extract_image(request, payload))
        if stored is None:
            return _json_error(f"Entry {entry.id} already exists", 409)
        show_ad = repository.register_save()
        return jsonify({"entry": stored.to_dict(), "show_ad": show_ad}), 201

    @app.put("/api/entries/<string:entry_id>")
    def update_entry(entry_id: str) -> Any:
        try:
            payload = _get_payload(request)
        except ValueError as exc:
            return _json_error(str(exc), 400)
        stored = repository.update(entry_id, _entry_fields(payload), _extract_image(request, payload))
        if stored is None:
            return _json_error(f"Entry {entry_id} not found", 404)
        show_ad = repository.register_save()
        return jsonify({"entry": stored.to_dict(), "show_ad": show_ad})

    @app.delete("/api/entries/<string:entry_id>")
    def delete_entry(entry_id: str) -> Any:
        if not repository.remove(entry_id):
            return _json_error(f"Entry {entry_id} not found", 404)
        return "", 204

    @app.get("/api/ad-counter")
    def ad_counter() -> Any:
        return jsonify({"counter": repository.ad_counter, "threshold": repository.ad_threshold})

    @app.get("/api/backup/export")
    def export_backup() -> Any:
        try:
            artifact = backups.export_artifact()
        except BackupBusyError as exc:
            return _json_error(str(exc), 409)
        response = Response(artifact, mimetype="application/octet-stream")
        filename = _timestamped_filename("storage_logger_backup")
        response.headers["Content-Disposition"] = f"attachment; filename={filename}.{BACKUP_EXTENSION}"
        return response

    @app.post("/api/backup/import")
    def import_backup() -> Any:
        mode_raw = request.args.get("mode") or request.form.get("mode") or ImportMode.COMBINE.value
        try:
            mode = ImportMode(str(mode_raw).strip().lower())
        except ValueError:
            return _json_error(f"Unsupported import mode: {mode_raw}", 400)
        try:
            artifact = _extract_artifact(request)
        except ValueError as exc:
            return _json_error(str(exc), 400)
        try:
            result = backups.import_artifact(artifact, mode)
        except BackupBusyError as exc:
            return _json_error(str(exc), 409)
        if not result.ok:
            return jsonify(result.to_dict()), 422
        return jsonify(result.to_dict())

    return app


def _get_payload(req: Any) -> Dict[str, Any]:
    if req.form or req.files:
        return req.form.to_dict()
    payload = req.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object or form data")
    return payload


def _entry_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: payload.get(key) for key in _ENTRY_FIELDS}


def _extract_image(req: Any, payload: Dict[str, Any]) -> Optional[bytes]:
    upload = req.files.get("image") if req.files else None
    if upload is not None and upload.filename != "":
        data = upload.read()
        return data or None
    return decode_image_base64(payload.get("image_base64"))


def _extract_artifact(req: Any) -> bytes:
    if req.files:
        upload = req.files.get("file")
        if upload is None or upload.filename == "":
            raise ValueError("Missing upload file")
        data = upload.read()
    else:
        data = req.get_data()
    if not data:
        raise ValueError("Empty file")
    return data


def _timestamped_filename(prefix: str) -> str:
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"{prefix}_{timestamp}"
