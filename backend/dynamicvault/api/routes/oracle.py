"""Oracle Routes — AI price prediction submission, review, and performance.

Invariants:
    - Submission is oracle-only; reading is oracle or admin
    - Review is admin-only: POST accepts, DELETE rejects
    - Listing without a tokenId returns an empty list
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dynamicvault.api import serializers
from dynamicvault.api.dependencies import parse_date_param, require_roles
from dynamicvault.core.domain_types import PredictionStatus, Role
from dynamicvault.infrastructure.database import get_db
from dynamicvault.schemas.oracle import PredictionAccept, PredictionSubmit
from dynamicvault.services.auth_service import AuthContext
from dynamicvault.services.oracle_service import OracleService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/oracle", tags=["oracle"])

_readers = require_roles(Role.ORACLE, Role.ADMIN)


@router.post("/predictions", status_code=status.HTTP_201_CREATED)
async def submit_prediction(
    body: PredictionSubmit,
    user: AuthContext = Depends(require_roles(Role.ORACLE)),
    db: AsyncSession = Depends(get_db),
):
    prediction = await OracleService(db).submit(body)
    return {
        "message": "Prediction submitted successfully",
        "prediction": serializers.prediction_summary(prediction),
    }


@router.get("/predictions")
async def list_predictions(
    token_id: int | None = Query(None, alias="tokenId", gt=0),
    prediction_status: PredictionStatus | None = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    user: AuthContext = Depends(_readers),
    db: AsyncSession = Depends(get_db),
):
    if token_id is None:
        return {"predictions": []}
    predictions = await OracleService(db).list_for_token(
        token_id, prediction_status, limit,
    )
    return {"predictions": [serializers.prediction_summary(p) for p in predictions]}


@router.get("/predictions/{prediction_id}")
async def get_prediction(
    prediction_id: UUID,
    user: AuthContext = Depends(_readers),
    db: AsyncSession = Depends(get_db),
):
    prediction = await OracleService(db).get(prediction_id)
    return {"prediction": serializers.prediction_detail(prediction)}


@router.post("/predictions/{prediction_id}")
async def accept_prediction(
    prediction_id: UUID,
    body: PredictionAccept | None = None,
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    prediction = await OracleService(db).accept(
        prediction_id,
        body.transaction_hash if body else None,
        body.block_number if body else None,
    )
    return {
        "message": "Prediction accepted and asset price updated",
        "prediction": serializers.prediction_detail(prediction),
    }


@router.delete("/predictions/{prediction_id}")
async def reject_prediction(
    prediction_id: UUID,
    reason: str | None = Query(None, max_length=500),
    user: AuthContext = Depends(require_roles(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    prediction = await OracleService(db).reject(prediction_id, reason)
    return {
        "message": "Prediction rejected",
        "prediction": serializers.prediction_detail(prediction),
    }


@router.get("/performance")
async def oracle_performance(
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    user: AuthContext = Depends(_readers),
    db: AsyncSession = Depends(get_db),
):
    return await OracleService(db).performance(
        parse_date_param(start_date, "startDate"),
        parse_date_param(end_date, "endDate"),
    )
