"""
Treasury forecast router.

Mounts under ``/api/tresorerie`` (prefix set in ``main.py``).

POST /prevision — Monthly forecast with foreign amounts converted at the
supplied exchange rate.  Nothing is stored.
"""

from __future__ import annotations

from fastapi import APIRouter

from budget_engine.schemas.treasury import ForecastInput, ForecastSnapshot
from budget_engine.services import treasury_service

router = APIRouter(tags=["Trésorerie"])


@router.post("/prevision", response_model=ForecastSnapshot, summary="Prévision mensuelle de trésorerie")
def compute_forecast(payload: ForecastInput) -> ForecastSnapshot:
    return treasury_service.compute_monthly_forecast(payload)
