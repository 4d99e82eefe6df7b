"""
Catalog and homepage content: plans, ranks, winners, video proofs.
Admin payloads arrive camelCase; FIELD maps translate them to columns.
"""
import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.plan import Plan
from app.models.rank import BADGE_COLORS, Rank
from app.models.video_proof import VideoProof
from app.models.winner import Winner

logger = logging.getLogger(__name__)

MAX_PLAN_DISCOUNT = 50


def _str(value: Any) -> str:
    return str(value).strip()


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid number", {"value": value})


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid integer", {"value": value})


def _features(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise ValidationError("features must be a list")
    return [str(v).strip() for v in value if str(v).strip()]


# payload key -> (column, coercion)
PLAN_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "name": ("name", _str),
    "price": ("price", _float),
    "period": ("period", _str),
    "description": ("description", _str),
    "features": ("features", _features),
    "imageUrl": ("image_url", _str),
    "popular": ("popular", bool),
    "active": ("active", bool),
    "discount": ("discount", _int),
    "discountLabel": ("discount_label", _str),
}
RANK_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "name": ("name", _str),
    "originalPrice": ("original_price", _float),
    "discountedPrice": ("discounted_price", _float),
    "badgeColor": ("badge_color", _str),
    "active": ("active", bool),
    "features": ("features", _features),
}
WINNER_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "name": ("name", _str),
    "amount": ("amount", _str),
    "rank": ("rank", _str),
    "match": ("match", _str),
    "imageUrl": ("image_url", _str),
    "imagePublicId": ("image_public_id", _str),
    "active": ("active", bool),
    "order": ("order", _int),
}
VIDEO_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "title": ("title", _str),
    "amount": ("amount", _str),
    "youtubeUrl": ("youtube_url", _str),
    "thumbnailUrl": ("thumbnail_url", _str),
    "date": ("date", _str),
    "active": ("active", bool),
    "order": ("order", _int),
}

DEFAULT_PLANS = [
    {
        "name": "Grand League",
        "price": 499,
        "period": "/match",
        "description": "Expert GL tips",
        "features": ["Captain Picks", "Detailed Analysis", "24/7 Support"],
        "popular": False,
    },
    {
        "name": "Premium",
        "price": 2999,
        "period": "/month",
        "description": "All matches covered",
        "features": ["All Matches", "GL + SL Teams", "WhatsApp Group", "Priority Support"],
        "popular": True,
    },
    {
        "name": "Small League",
        "price": 299,
        "period": "/match",
        "description": "Safe SL teams",
        "features": ["Multiple Teams", "Safe Picks", "Live Updates"],
        "popular": False,
    },
]
DEFAULT_RANKS = [
    {
        "rank_number": 1,
        "name": "1st Rank",
        "original_price": 6999,
        "discounted_price": 1999,
        "features": ["Guaranteed 1st Position", "Premium Team Analysis", "24/7 Priority Support", "Winning Strategies"],
    },
    {
        "rank_number": 2,
        "name": "2nd Rank",
        "original_price": 5999,
        "discounted_price": 1499,
        "features": ["Guaranteed 2nd Position", "Expert Team Tips", "Priority Support", "Match Analysis"],
    },
    {
        "rank_number": 3,
        "name": "3rd Rank",
        "original_price": 4999,
        "discounted_price": 999,
        "features": ["Guaranteed 3rd Position", "Winning Teams", "WhatsApp Support", "Live Updates"],
    },
]
DEFAULT_WINNERS = [
    {"name": "Rahul K.", "amount": "₹2.5L", "rank": "1st", "match": "IPL", "order": 1},
    {"name": "Amit S.", "amount": "₹1.8L", "rank": "1st", "match": "T20 WC", "order": 2},
    {"name": "Vikram P.", "amount": "₹3.2L", "rank": "1st", "match": "PSL", "order": 3},
    {"name": "Suresh Y.", "amount": "₹1.5L", "rank": "2nd", "match": "BBL", "order": 4},
]


def _apply(obj: Any, data: dict[str, Any], fields: dict[str, tuple[str, Callable[[Any], Any]]]) -> None:
    for key, (column, coerce) in fields.items():
        if key in data and data[key] is not None:
            setattr(obj, column, coerce(data[key]))


def _require(data: dict[str, Any], keys: tuple[str, ...]) -> None:
    missing = [k for k in keys if data.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", {"missing": missing})


# ---------- serializers ----------

def plan_to_dict(plan: Plan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "name": plan.name,
        "price": plan.price,
        "effectivePrice": plan.effective_price(),
        "period": plan.period,
        "description": plan.description,
        "features": plan.features or [],
        "imageUrl": plan.image_url,
        "popular": plan.popular,
        "active": plan.active,
        "discount": plan.discount,
        "discountLabel": plan.discount_label,
    }


def rank_to_dict(rank: Rank) -> dict[str, Any]:
    return {
        "id": rank.id,
        "rankNumber": rank.rank_number,
        "name": rank.name,
        "originalPrice": rank.original_price,
        "discountedPrice": rank.discounted_price,
        "badgeColor": rank.badge_color,
        "active": rank.active,
        "features": rank.features or [],
    }


def winner_to_dict(winner: Winner, admin: bool = False) -> dict[str, Any]:
    out = {
        "id": winner.id,
        "name": winner.name,
        "amount": winner.amount,
        "rank": winner.rank,
        "match": winner.match,
        "imageUrl": winner.image_url,
    }
    if admin:
        out.update({"imagePublicId": winner.image_public_id, "active": winner.active, "order": winner.order})
    return out


def video_to_dict(video: VideoProof, admin: bool = False) -> dict[str, Any]:
    out = {
        "id": video.id,
        "title": video.title,
        "amount": video.amount,
        "youtubeUrl": video.youtube_url,
        "thumbnailUrl": video.thumbnail_url,
        "date": video.date,
    }
    if admin:
        out.update({"active": video.active, "order": video.order})
    return out


class CatalogService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _save(self, obj: Any) -> Any:
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def _delete(self, obj: Any) -> None:
        self.db.delete(obj)
        self.db.commit()

    # ---------- plans ----------

    def list_plans(self, active_only: bool = True) -> list[Plan]:
        query = self.db.query(Plan)
        if active_only:
            query = query.filter(Plan.active.is_(True))
            return query.order_by(Plan.price.asc()).all()
        return query.order_by(Plan.created_at.desc()).all()

    def get_plan(self, plan_id: str) -> Plan:
        plan = self.db.query(Plan).filter(Plan.id == plan_id).one_or_none()
        if plan is None:
            raise NotFoundError("Plan not found", {"plan_id": plan_id})
        return plan

    def _check_discount(self, plan: Plan) -> None:
        if not 0 <= (plan.discount or 0) <= MAX_PLAN_DISCOUNT:
            raise ValidationError(f"discount must be between 0 and {MAX_PLAN_DISCOUNT}")
        if plan.price is not None and plan.price <= 0:
            raise ValidationError("price must be positive")

    def create_plan(self, data: dict[str, Any]) -> Plan:
        _require(data, ("name", "price"))
        plan = Plan()
        _apply(plan, data, PLAN_FIELDS)
        self._check_discount(plan)
        self._save(plan)
        logger.info("plan_created", extra={"event_type": "plan"})
        return plan

    def update_plan(self, plan_id: str, data: dict[str, Any]) -> Plan:
        plan = self.get_plan(plan_id)
        _apply(plan, data, PLAN_FIELDS)
        self._check_discount(plan)
        return self._save(plan)

    def delete_plan(self, plan_id: str) -> None:
        self._delete(self.get_plan(plan_id))

    def seed_plans(self) -> int:
        if self.db.query(Plan).count() > 0:
            return 0
        for item in DEFAULT_PLANS:
            self.db.add(Plan(**item))
        self.db.commit()
        return len(DEFAULT_PLANS)

    # ---------- ranks ----------

    def list_ranks(self, active_only: bool = True) -> list[Rank]:
        query = self.db.query(Rank)
        if active_only:
            query = query.filter(Rank.active.is_(True))
        return query.order_by(Rank.rank_number.asc()).all()

    def get_rank(self, rank_id: str) -> Rank:
        rank = self.db.query(Rank).filter(Rank.id == rank_id).one_or_none()
        if rank is None:
            raise NotFoundError("Rank not found", {"rank_id": rank_id})
        return rank

    def update_rank(self, rank_id: str, data: dict[str, Any]) -> Rank:
        rank = self.get_rank(rank_id)
        _apply(rank, data, RANK_FIELDS)
        if rank.discounted_price <= 0:
            raise ValidationError("discountedPrice must be positive")
        return self._save(rank)

    def seed_ranks(self) -> tuple[bool, int]:
        """Returns (created, count)."""
        existing = self.db.query(Rank).count()
        if existing > 0:
            return False, existing
        for item in DEFAULT_RANKS:
            self.db.add(Rank(badge_color=BADGE_COLORS[item["rank_number"]], **item))
        self.db.commit()
        return True, len(DEFAULT_RANKS)

    # ---------- winners ----------

    def list_winners(self, active_only: bool = True) -> list[Winner]:
        query = self.db.query(Winner)
        if active_only:
            query = query.filter(Winner.active.is_(True))
        return query.order_by(Winner.order.asc(), Winner.created_at.desc()).all()

    def get_winner(self, winner_id: str) -> Winner:
        winner = self.db.query(Winner).filter(Winner.id == winner_id).one_or_none()
        if winner is None:
            raise NotFoundError("Winner not found", {"winner_id": winner_id})
        return winner

    def create_winner(self, data: dict[str, Any]) -> Winner:
        _require(data, ("name", "amount", "match"))
        winner = Winner()
        _apply(winner, data, WINNER_FIELDS)
        return self._save(winner)

    def update_winner(self, winner_id: str, data: dict[str, Any]) -> Winner:
        winner = self.get_winner(winner_id)
        _apply(winner, data, WINNER_FIELDS)
        return self._save(winner)

    def delete_winner(self, winner_id: str) -> None:
        self._delete(self.get_winner(winner_id))

    def seed_winners(self) -> int:
        if self.db.query(Winner).count() > 0:
            return 0
        for item in DEFAULT_WINNERS:
            self.db.add(Winner(**item))
        self.db.commit()
        return len(DEFAULT_WINNERS)

    # ---------- video proofs ----------

    def list_videos(self, active_only: bool = True) -> list[VideoProof]:
        query = self.db.query(VideoProof)
        if active_only:
            query = query.filter(VideoProof.active.is_(True))
        return query.order_by(VideoProof.order.asc(), VideoProof.created_at.desc()).all()

    def get_video(self, video_id: str) -> VideoProof:
        video = self.db.query(VideoProof).filter(VideoProof.id == video_id).one_or_none()
        if video is None:
            raise NotFoundError("Video not found", {"video_id": video_id})
        return video

    def create_video(self, data: dict[str, Any]) -> VideoProof:
        _require(data, ("title", "amount", "youtubeUrl", "date"))
        video = VideoProof()
        _apply(video, data, VIDEO_FIELDS)
        return self._save(video)

    def update_video(self, video_id: str, data: dict[str, Any]) -> VideoProof:
        video = self.get_video(video_id)
        _apply(video, data, VIDEO_FIELDS)
        return self._save(video)

    def delete_video(self, video_id: str) -> None:
        self._delete(self.get_video(video_id))
