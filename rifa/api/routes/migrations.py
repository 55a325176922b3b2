from fastapi import APIRouter

from rifa.api.dependencies import require_db
from rifa.models.schemas import MigrationRunResponse
from rifa.services import migrations

router = APIRouter(prefix="/migrations", tags=["migrations"])


@router.post("/run", response_model=MigrationRunResponse)
def run_migrations():
    require_db()
    return migrations.run_migrations()
