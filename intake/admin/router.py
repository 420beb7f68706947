"""Admin API: lead submission log and the loaded practice-area catalog."""

from fastapi import APIRouter, Query

from intake.registry import list_submissions
from intake.state.schema_registry import get_catalog

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/leads")
def admin_list_leads(
    status: str | None = Query(default=None, description="accepted | rejected | error"),
    limit: int = Query(default=100, ge=1, le=1000),
):
    """Append-only submission attempts, newest first."""
    return {"submissions": list_submissions(status=status, limit=limit)}


@router.get("/practice-areas")
def admin_practice_areas():
    catalog = get_catalog()
    return {
        "fallback_category": catalog.fallback_category,
        "practice_areas": [
            {
                "id": schema.id,
                "name": schema.name,
                "askable_fields": [f.name for f in schema.askable_fields()],
                "askable_field_count": len(schema.askable_fields()),
                "subcategories": schema.subcategory_vocabulary,
            }
            for schema in catalog.categories.values()
        ],
    }
