"""
Admin API: dashboard, site settings, homepage promo content, initial seeding.
featured-match, timer, rank-promo-image and public-settings GETs are public; everything else needs a token.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.orders import order_to_item
from app.services.auth.jwt import get_current_user
from app.services.catalog.service import CatalogService
from app.services.orders.service import OrderService
from app.services.site_settings.settings_service import SiteSettingsService

router = APIRouter(prefix="/api/admin", tags=["admin"])

admin_only = [Depends(get_current_user)]


# ---------- Dashboard ----------
@router.get("/dashboard", dependencies=admin_only)
def dashboard(range_key: str = Query("all", alias="range"), db: Session = Depends(get_db)):
    stats = OrderService(db).dashboard(range_key)
    stats["recentOrders"] = [order_to_item(o) for o in stats["recentOrders"]]
    return stats


# ---------- Settings ----------
@router.get("/settings", dependencies=admin_only)
def get_settings(db: Session = Depends(get_db)):
    return SiteSettingsService(db).as_dict()


@router.put("/settings", dependencies=admin_only)
def update_settings(payload: dict = Body(...), db: Session = Depends(get_db)):
    return {"message": "Settings updated", "settings": SiteSettingsService(db).update(payload)}


@router.get("/public-settings")
def public_settings(db: Session = Depends(get_db)):
    return SiteSettingsService(db).public_dict()


# ---------- Homepage promo ----------
@router.get("/featured-match")
def get_featured_match(db: Session = Depends(get_db)):
    return SiteSettingsService(db).featured_match()


@router.put("/featured-match", dependencies=admin_only)
def update_featured_match(payload: dict = Body(...), db: Session = Depends(get_db)):
    return {"message": "Featured match updated", "featuredMatch": SiteSettingsService(db).set_featured_match(payload)}


@router.get("/timer")
def get_timer(db: Session = Depends(get_db)):
    return SiteSettingsService(db).timer()


@router.put("/timer", dependencies=admin_only)
def update_timer(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    return SiteSettingsService(db).set_timer(payload.get("deadline"))


@router.get("/rank-promo-image")
def get_rank_promo_image(db: Session = Depends(get_db)):
    return {"imageUrl": SiteSettingsService(db).get_or_create().rank_promo_image_url}


@router.put("/rank-promo-image", dependencies=admin_only)
def update_rank_promo_image(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    data = SiteSettingsService(db).update({"rankPromoImage": payload.get("imageUrl") or ""})
    return {"imageUrl": data["rankPromoImage"]}


# ---------- Seeding ----------
@router.post("/init", dependencies=admin_only)
def init(db: Session = Depends(get_db)):
    plans = CatalogService(db).seed_plans()
    SiteSettingsService(db).get_or_create()
    return {"message": "Initialization complete", "plansCreated": plans}
