"""Category library with approved preset counts."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.db.session import get_db
from backend.app.models.presets import CATEGORIES, CategoryListResponse
from backend.app.services.preset_repository import count_presets_by_category

router = APIRouter()


@router.get("/api/v1/categories", response_model=CategoryListResponse)
def list_categories(db: Session = Depends(get_db)) -> CategoryListResponse:
    counts = count_presets_by_category(db)
    categories = [
        c.model_copy(update={"preset_count": counts.get(str(c.id), 0)})
        for c in sorted(CATEGORIES, key=lambda c: c.display_order)
    ]
    return CategoryListResponse(categories=categories)
