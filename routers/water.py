from fastapi import APIRouter, Depends, Request
from dataclasses import asdict

import forms
import views
from routers.tanks import tank_or_404
from store import JournalStore, get_store

router = APIRouter()

@router.get("/api/tanks/{tank_id}/water")
def api_water(tank_id: str, store: JournalStore = Depends(get_store)):
    tank = tank_or_404(store, tank_id)
    doc = store.document
    return {
        "tank": {"id": tank.id, "name": tank.name},
        "parameters": views.active_parameters(tank),
        "series": views.chart_series(doc, tank_id),
        "entries": views.water_table(doc, tank_id),
    }

@router.post("/tanks/{tank_id}/water")
async def water_add(request: Request, tank_id: str, store: JournalStore = Depends(get_store)):
    tank = tank_or_404(store, tank_id)
    form = await request.form()
    entry = forms.build_water_entry(form, tank)
    store.upsert_water(entry)
    return {"ok": True, "entry": asdict(entry)}

@router.post("/water/{entry_id}/delete")
def water_delete(entry_id: str, store: JournalStore = Depends(get_store)):
    store.remove_water(entry_id)
    return {"ok": True}
