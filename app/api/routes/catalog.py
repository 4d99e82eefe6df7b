"""
Catalog API: plans, ranks and homepage content (winners, video proofs).
Public GETs return active items only; /all variants and writes are admin.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.auth.jwt import get_current_user
from app.services.catalog.service import (
    CatalogService,
    plan_to_dict,
    rank_to_dict,
    video_to_dict,
    winner_to_dict,
)
from app.services.site_settings.settings_service import SiteSettingsService

router = APIRouter(prefix="/api", tags=["catalog"])

admin_only = [Depends(get_current_user)]


# ---------- Plans ----------
@router.get("/plans")
def list_plans(db: Session = Depends(get_db)):
    return [plan_to_dict(p) for p in CatalogService(db).list_plans()]


@router.get("/plans/all", dependencies=admin_only)
def list_all_plans(db: Session = Depends(get_db)):
    return [plan_to_dict(p) for p in CatalogService(db).list_plans(active_only=False)]


@router.get("/plans/{plan_id}")
def get_plan(plan_id: str, db: Session = Depends(get_db)):
    """Plan with the UPI details the checkout page shows."""
    plan = CatalogService(db).get_plan(plan_id)
    site = SiteSettingsService(db).get_or_create()
    return {"plan": plan_to_dict(plan), "upiId": site.upi_id, "upiName": site.upi_name}


@router.post("/plans", status_code=201, dependencies=admin_only)
def create_plan(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    return {"message": "Plan created", "plan": plan_to_dict(CatalogService(db).create_plan(payload))}


@router.put("/plans/{plan_id}", dependencies=admin_only)
def update_plan(plan_id: str, payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    return {"message": "Plan updated", "plan": plan_to_dict(CatalogService(db).update_plan(plan_id, payload))}


@router.delete("/plans/{plan_id}", dependencies=admin_only)
def delete_plan(plan_id: str, db: Session = Depends(get_db)):
    CatalogService(db).delete_plan(plan_id)
    return {"message": "Plan deleted"}


# ---------- Ranks ----------
@router.get("/ranks")
def list_ranks(db: Session = Depends(get_db)):
    return [rank_to_dict(r) for r in CatalogService(db).list_ranks()]


@router.get("/ranks/all", dependencies=admin_only)
def list_all_ranks(db: Session = Depends(get_db)):
    return [rank_to_dict(r) for r in CatalogService(db).list_ranks(active_only=False)]


@router.post("/ranks/init", dependencies=admin_only)
def init_ranks(db: Session = Depends(get_db)):
    created, count = CatalogService(db).seed_ranks()
    message = "Ranks initialized successfully" if created else "Ranks already exist"
    return {"message": message, "count": count}


@router.get("/ranks/{rank_id}")
def get_rank(rank_id: str, db: Session = Depends(get_db)):
    rank = CatalogService(db).get_rank(rank_id)
    site = SiteSettingsService(db).get_or_create()
    return {
        "rank": rank_to_dict(rank),
        "upiId": site.upi_id,
        "upiName": site.upi_name,
        "whatsappNumber": site.whatsapp_number,
    }


@router.put("/ranks/{rank_id}", dependencies=admin_only)
def update_rank(rank_id: str, payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    return {"message": "Rank updated", "rank": rank_to_dict(CatalogService(db).update_rank(rank_id, payload))}


# ---------- Content: video proofs ----------
@router.get("/content/videos")
def list_videos(db: Session = Depends(get_db)):
    return [video_to_dict(v) for v in CatalogService(db).list_videos()]


@router.get("/content/videos/all", dependencies=admin_only)
def list_all_videos(db: Session = Depends(get_db)):
    return [video_to_dict(v, admin=True) for v in CatalogService(db).list_videos(active_only=False)]


@router.post("/content/videos", status_code=201, dependencies=admin_only)
def create_video(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    return {"message": "Video created", "video": video_to_dict(CatalogService(db).create_video(payload), admin=True)}


@router.put("/content/videos/{video_id}", dependencies=admin_only)
def update_video(video_id: str, payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    video = CatalogService(db).update_video(video_id, payload)
    return {"message": "Video updated", "video": video_to_dict(video, admin=True)}


@router.delete("/content/videos/{video_id}", dependencies=admin_only)
def delete_video(video_id: str, db: Session = Depends(get_db)):
    CatalogService(db).delete_video(video_id)
    return {"message": "Video deleted"}


# ---------- Content: winners ----------
@router.get("/content/winners")
def list_winners(db: Session = Depends(get_db)):
    return [winner_to_dict(w) for w in CatalogService(db).list_winners()]


@router.get("/content/winners/all", dependencies=admin_only)
def list_all_winners(db: Session = Depends(get_db)):
    return [winner_to_dict(w, admin=True) for w in CatalogService(db).list_winners(active_only=False)]


@router.post("/content/winners", status_code=201, dependencies=admin_only)
def create_winner(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    winner = CatalogService(db).create_winner(payload)
    return {"message": "Winner created", "winner": winner_to_dict(winner, admin=True)}


@router.put("/content/winners/{winner_id}", dependencies=admin_only)
def update_winner(winner_id: str, payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    winner = CatalogService(db).update_winner(winner_id, payload)
    return {"message": "Winner updated", "winner": winner_to_dict(winner, admin=True)}


@router.delete("/content/winners/{winner_id}", dependencies=admin_only)
def delete_winner(winner_id: str, db: Session = Depends(get_db)):
    CatalogService(db).delete_winner(winner_id)
    return {"message": "Winner deleted"}


@router.post("/content/init", dependencies=admin_only)
def init_content(db: Session = Depends(get_db)):
    created = CatalogService(db).seed_winners()
    return {"message": "Content initialized successfully", "winnersCreated": created}
