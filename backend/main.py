import logging
from typing import Optional
from fastapi import FastAPI, Depends, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import analytics
import config
import eligibility
import forms
import responses
from analytics import ViewerScope
from db import Base, engine, get_db
from errors import FormEngineError
from logging_setup import configure_logging
from schemas import FillForm, FormCreate, FormEdit
from security import current_alumni_id, verify_admin, viewer_scope

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Alumni Survey Forms API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)


@app.exception_handler(FormEngineError)
async def form_engine_error_handler(request: Request, exc: FormEngineError):
    """Render domain errors as {"detail", "code"} with the error's status."""
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
def health():
    """Basic readiness probe.

    Returns:
        dict: {"ok": True}
    """
    return {"ok": True}

# ------------------------
# Admin: form schema
# ------------------------
@app.post("/admin/forms", dependencies=[Depends(verify_admin)])
def create_form(payload: FormCreate, db: Session = Depends(get_db)):
    """Create a form with its questions and options.

    Returns:
        dict: {"id": <new_form_id>}
    """
    return {"id": forms.create_form(db, payload)}

@app.get("/admin/forms", dependencies=[Depends(verify_admin)])
def list_forms(db: Session = Depends(get_db)):
    """List all forms with their response counts."""
    return forms.list_forms(db)

@app.get("/admin/forms/{form_id}", dependencies=[Depends(verify_admin)])
def form_detail(form_id: int, db: Session = Depends(get_db)):
    """Form with ordered questions and options."""
    return forms.serialize_form(forms.get_form_or_404(db, form_id))

@app.put("/admin/forms/{form_id}", dependencies=[Depends(verify_admin)])
def edit_form(form_id: int, diff: FormEdit, db: Session = Depends(get_db)):
    """Apply a new/update/delete diff to a form's questions, atomically.

    Returns:
        dict: {"ok": True}
    """
    forms.edit_form(db, form_id, diff)
    return {"ok": True}

@app.delete("/admin/forms/{form_id}", dependencies=[Depends(verify_admin)])
def delete_form(form_id: int, db: Session = Depends(get_db)):
    """Delete a form (and its responses) outside of its active period.

    Returns:
        dict: {"id": <deleted_form_id>}
    """
    return {"id": forms.delete_form(db, form_id)}

# ------------------------
# Admin: analytics
# ------------------------
@app.get("/admin/forms/{form_id}/statistics", dependencies=[Depends(verify_admin)])
def form_statistics(form_id: int, db: Session = Depends(get_db)):
    """Per-question answer statistics."""
    return analytics.form_statistics(db, form_id)

@app.get("/admin/forms/{form_id}/responses", dependencies=[Depends(verify_admin)])
def form_responses(form_id: int, scope: ViewerScope = Depends(viewer_scope), db: Session = Depends(get_db)):
    """Per-respondent answers, limited to the viewer's study program when scoped."""
    return analytics.respondent_rows(db, form_id, scope)

@app.get("/admin/forms/{form_id}/export.csv", dependencies=[Depends(verify_admin)])
def export_csv(form_id: int, db: Session = Depends(get_db)):
    """Export form answers with respondent cohort columns as CSV.

    Returns:
        Response: text/csv attachment `form_<id>_responses.csv`.
    """
    df = analytics.export_frame(db, form_id)
    csv_bytes = df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv",
                    headers={"Content-Disposition": f"attachment; filename=form_{form_id}_responses.csv"})

# ------------------------
# Alumni: discover and fill
# ------------------------
@app.get("/forms/available")
def available_forms(admission_year: int, graduate_year: Optional[int] = None,
                    form_type: Optional[str] = Query(default=None, alias="type"),
                    db: Session = Depends(get_db)):
    """Forms open (or opening within the lookahead window) for a cohort."""
    return eligibility.eligible_forms(db, admission_year, graduate_year, form_type=form_type)

@app.get("/forms/{form_id}/fill")
def form_for_fill(form_id: int, alumni_id: int = Depends(current_alumni_id), db: Session = Depends(get_db)):
    """Form schema for an alumni that is currently eligible to fill it."""
    return eligibility.form_for_fill(db, form_id, alumni_id)

@app.post("/forms/fill")
def fill_form(body: FillForm, alumni_id: int = Depends(current_alumni_id), db: Session = Depends(get_db)):
    """Record one response with all its answers.

    Returns:
        dict: {"response_id": int}
    """
    return {"response_id": responses.record_response(db, alumni_id, body.answers)}
