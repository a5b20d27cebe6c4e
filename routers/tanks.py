from fastapi import APIRouter, Depends, Request, HTTPException
from fastapi.responses import StreamingResponse
from dataclasses import asdict
from io import BytesIO
import re
import pandas as pd

import forms
import views
from parameters import PARAMS_BY_KEY
from store import JournalStore, get_store

router = APIRouter()

def export_filename(tank_name: str) -> str:
    """`Tank 01` -> `tank_01_water.xlsx`; ASCII only so the header stays latin-1."""
    stem = "_".join(re.findall(r"[a-z0-9]+", (tank_name or "").lower())) or "tank"
    return f"{stem}_water.xlsx"

def tank_or_404(store: JournalStore, tank_id: str):
    tank = store.find("tanks", tank_id)
    if not tank: raise HTTPException(status_code=404, detail="Tank not found")
    return tank

@router.get("/api/tanks")
def api_tanks(store: JournalStore = Depends(get_store)):
    doc = store.document
    data = []
    for t in doc.tanks:
        latest = views.latest_reading(doc, t.id)
        data.append(dict(
            asdict(t),
            active_parameters=views.active_parameters(t),
            latest_reading=asdict(latest) if latest else None,
        ))
    return {"tanks": data}

@router.post("/tanks/save")
async def tank_save(request: Request, store: JournalStore = Depends(get_store)):
    form = await request.form()
    existing = store.find("tanks", forms.clean(form.get("tank_id")))
    try:
        tank = forms.build_tank(form, existing)
    except forms.FormError as e:
        raise HTTPException(status_code=400, detail=str(e))
    store.upsert_tank(tank)
    return {"ok": True, "tank": asdict(tank)}

@router.post("/tanks/{tank_id}/toggle")
def tank_toggle(tank_id: str, store: JournalStore = Depends(get_store)):
    tank = tank_or_404(store, tank_id)
    store.update("tanks", tank_id, active=not tank.active)
    return {"ok": True, "active": not tank.active}

@router.post("/tanks/{tank_id}/delete")
def tank_delete(tank_id: str, store: JournalStore = Depends(get_store)):
    store.remove_tank(tank_id)
    return {"ok": True}

@router.get("/tanks/{tank_id}/export")
def tank_export(tank_id: str, store: JournalStore = Depends(get_store)):
    tank = tank_or_404(store, tank_id)
    keys = views.active_parameters(tank)
    columns = ["Date", "Note"]
    for k in keys:
        p = PARAMS_BY_KEY[k]
        columns.append(f"{p.label} ({p.unit})" if p.unit else p.label)
    rows = []
    for w in views.water_for_tank(store.document, tank_id):
        rows.append([w.date, w.note] + [w.value(k) for k in keys])
    df = pd.DataFrame(rows, columns=columns)
    output = BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name="Water")
    output.seek(0)
    return StreamingResponse(
        output,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(tank.name)}"'},
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
