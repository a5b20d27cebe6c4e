from fastapi import APIRouter, Depends, Request, File, UploadFile
from fastapi.responses import Response
from dataclasses import asdict
import logging

import forms
import persistence
from persistence import BACKUP_FILENAME, BACKUP_MEDIA_TYPE, ImportRejected
from store import JournalStore, get_store

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/api/settings")
def api_settings(store: JournalStore = Depends(get_store)):
    return asdict(store.document.settings)

@router.post("/settings")
async def settings_save(request: Request, store: JournalStore = Depends(get_store)):
    form = await request.form()
    settings = forms.build_settings(form, store.document.settings)
    store.update_settings(settings)
    return {"ok": True, "settings": asdict(settings)}

@router.post("/settings/limits")
async def limits_save(request: Request, store: JournalStore = Depends(get_store)):
    form = await request.form()
    settings = forms.build_limits(form, store.document.settings)
    store.update_settings(settings)
    return {"ok": True, "settings": asdict(settings)}

# --- Backup ---
@router.get("/admin/export")
def export_backup(store: JournalStore = Depends(get_store)):
    return Response(
        content=persistence.export_document(store.document),
        media_type=BACKUP_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{BACKUP_FILENAME}"'},
    )

@router.post("/admin/import")
async def import_backup(file: UploadFile = File(...), store: JournalStore = Depends(get_store)):
    contents = await file.read()
    try:
        store.import_backup(contents)
    except ImportRejected as e:
        logger.warning(f"Backup import rejected: {e}")
        return {"ok": False}
    return {"ok": True}

@router.post("/admin/reset")
def reset_all(store: JournalStore = Depends(get_store)):
    store.reset()
    return {"ok": True}
