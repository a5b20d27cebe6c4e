from fastapi import APIRouter, Depends, Request, HTTPException
from dataclasses import asdict
from typing import Optional

import forms
import views
from store import JournalStore, get_store

router = APIRouter()

def attempt_or_404(store: JournalStore, attempt_id: str):
    attempt = store.find("attempts", attempt_id)
    if not attempt: raise HTTPException(status_code=404, detail="Attempt not found")
    return attempt

# --- Lines ---
@router.get("/api/lines")
def api_lines(store: JournalStore = Depends(get_store)):
    doc = store.document
    return {"lines": [dict(asdict(l), linked=views.linked_attempt_count(doc, l.id)) for l in doc.lines]}

@router.post("/lines/save")
async def line_save(request: Request, store: JournalStore = Depends(get_store)):
    form = await request.form()
    existing = store.find("lines", forms.clean(form.get("line_id")))
    try:
        line = forms.build_line(form, existing)
    except forms.FormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.upsert_line(line)
    return {"ok": True, "line": asdict(line)}

@router.post("/lines/{line_id}/delete")
def line_delete(line_id: str, store: JournalStore = Depends(get_store)):
    store.remove_line(line_id)
    line = store.find("lines", line_id)
    return {"ok": True, "archived": bool(line and line.archived)}

# --- Attempts ---
@router.get("/api/attempts")
def api_attempts(include_archived: bool = False, store: JournalStore = Depends(get_store)):
    doc = store.document
    attempts = doc.attempts if include_archived else views.open_attempts(doc)
    return {"attempts": [views.attempt_detail(doc, a) for a in attempts]}

@router.get("/api/attempts/{attempt_id}")
def api_attempt(attempt_id: str, store: JournalStore = Depends(get_store)):
    return views.attempt_detail(store.document, attempt_or_404(store, attempt_id))

@router.post("/attempts/save")
async def attempt_save(request: Request, store: JournalStore = Depends(get_store)):
    form = await request.form()
    existing = store.find("attempts", forms.clean(form.get("attempt_id")))
    try:
        attempt = forms.build_attempt(form, form.getlist("tank_ids"), existing)
    except forms.FormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.upsert_attempt(attempt)
    return {"ok": True, "attempt": asdict(attempt)}

@router.post("/attempts/{attempt_id}/end")
async def attempt_end(request: Request, attempt_id: str, store: JournalStore = Depends(get_store)):
    attempt_or_404(store, attempt_id)
    form = await request.form()
    try:
        end_date: Optional[str] = forms.end_date(form)
    except forms.FormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.end_attempt(attempt_id, end_date)
    return {"ok": True, "attempt": asdict(store.find("attempts", attempt_id))}

@router.post("/attempts/{attempt_id}/archive")
def attempt_archive(attempt_id: str, store: JournalStore = Depends(get_store)):
    attempt_or_404(store, attempt_id)
    store.archive_attempt(attempt_id)
    return {"ok": True}

@router.post("/attempts/{attempt_id}/delete")
def attempt_delete(attempt_id: str, store: JournalStore = Depends(get_store)):
    store.remove_attempt(attempt_id)
    return {"ok": True}

# --- Groups ---
@router.post("/attempts/{attempt_id}/groups")
async def group_add(request: Request, attempt_id: str, store: JournalStore = Depends(get_store)):
    attempt = attempt_or_404(store, attempt_id)
    form = await request.form()
    try:
        group = forms.build_group(form, attempt)
    except forms.FormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.upsert_group(group)
    return {"ok": True, "group": asdict(group)}

@router.post("/groups/{group_id}/delete")
def group_delete(group_id: str, store: JournalStore = Depends(get_store)):
    store.remove_group(group_id)
    return {"ok": True}

# --- Log ---
@router.post("/attempts/{attempt_id}/log")
async def log_add(request: Request, attempt_id: str, store: JournalStore = Depends(get_store)):
    attempt = attempt_or_404(store, attempt_id)
    form = await request.form()
    try:
        entry = forms.build_log_entry(form, attempt)
    except forms.FormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.upsert_log(entry)
    return {"ok": True, "entry": asdict(entry)}

@router.post("/log/{entry_id}/delete")
def log_delete(entry_id: str, store: JournalStore = Depends(get_store)):
    store.remove_log(entry_id)
    return {"ok": True}
