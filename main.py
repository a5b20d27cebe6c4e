import os
import logging
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, Request, Depends
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

import views
from routers import journal, settings, tanks, water
from parameters import finite_or_none
from store import JournalStore, get_store

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Guppy Breeding Journal")

templates_dir = os.path.join(BASE_DIR, "templates")
templates = Jinja2Templates(directory=templates_dir)

# --- Jinja Helpers ---
def fmt_reading(v: Any) -> str:
    """Measured values with at most two decimals, ``25.20`` -> ``25.2``; dash when unmeasured."""
    fv = finite_or_none(v)
    if fv is None: return "–"
    return f"{fv:.2f}".rstrip("0").rstrip(".")

templates.env.filters["reading"] = fmt_reading
templates.env.filters["short_date"] = views.short_date

app.include_router(tanks.router)
app.include_router(water.router)
app.include_router(journal.router)
app.include_router(settings.router)

@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request, store: JournalStore = Depends(get_store)):
    doc = store.document
    lines = views.by_id(doc.lines)
    attempts = []
    for a in views.open_attempts(doc):
        attempts.append({
            "attempt": a,
            "line_name": lines[a.line_id].name if a.line_id in lines else "–",
            "tank_names": [views.tank_name(doc, tid) for tid in a.tank_ids],
        })
    return templates.TemplateResponse(request, "dashboard.html", {
        "breeder_name": doc.settings.breeder_name,
        "summary": views.dashboard(doc),
        "attempts": attempts,
        "tank_cards": views.tank_cards(doc),
    })

@app.get("/api/dashboard")
def api_dashboard(store: JournalStore = Depends(get_store)):
    doc = store.document
    summary = views.dashboard(doc)
    last = summary["last_log"]
    return {
        "active_attempts": summary["active_attempts"],
        "active_tanks": summary["active_tanks"],
        "last_log": asdict(last) if last else None,
        "tanks": [
            {"id": c["tank"].id, "name": c["tank"].name, "latest_date": c["latest_date"], "readings": c["readings"]}
            for c in views.tank_cards(doc)
        ],
    }
