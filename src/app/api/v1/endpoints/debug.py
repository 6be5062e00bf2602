"""
Debug Endpoints.

Configuration presence checks and per-status application counts for
local and staging environments. In production every route here answers
404 as if it did not exist.
"""
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.config import Settings, get_settings
from ....core.exceptions import NotFoundError
from ....core.responses import GenericResponse
from ....db.session import get_db
from ....schemas.admin import StatusCounts
from ....services.admin_service import AdminService


async def require_non_production(
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    if settings.is_production:
        raise NotFoundError(message="Not found")


router = APIRouter(prefix="/debug", dependencies=[Depends(require_non_production)])


@router.get(
    "/config",
    response_model=GenericResponse[dict[str, Any]],
    summary="Configuration presence",
    description="Which required settings are present. Values are never returned.",
)
async def config_presence(
    settings: Annotated[Settings, Depends(get_settings)],
) -> GenericResponse[dict[str, Any]]:
    presence = {
        "app_env": settings.APP_ENV,
        "has_database_url": bool(settings.DATABASE_URL),
        "has_aws_access_key": bool(settings.AWS_ACCESS_KEY_ID),
        "has_aws_secret_key": bool(settings.AWS_SECRET_ACCESS_KEY),
        "has_cognito_user_pool": bool(settings.COGNITO_USER_POOL_ID),
        "has_cognito_client_id": bool(settings.COGNITO_CLIENT_ID),
        "has_cognito_client_secret": bool(settings.COGNITO_CLIENT_SECRET),
        "aws_region": settings.AWS_REGION,
    }
    return GenericResponse(message="Configuration check", data=presence)


@router.get(
    "/doctors",
    response_model=GenericResponse[StatusCounts],
    summary="Applications per status",
)
async def doctor_status_counts(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> GenericResponse[StatusCounts]:
    counts = await AdminService(db).status_counts()
    return GenericResponse(
        message="Doctor status counts",
        data=StatusCounts(counts=counts, total=sum(counts.values())),
    )
