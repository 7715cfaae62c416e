"""
Endpoints de analytics.
"""
from typing import Optional

from fastapi import APIRouter

from app.services.analytics.service import analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/overview")
async def overview():
    return await analytics_service.overview()


@router.get("/tendencia")
async def tendencia(granularidade: str = "day", origem: Optional[str] = None):
    """
    Positivos/negativos por periodo.

    granularidade: day, week (ISO) ou month. Periodos em UTC.
    """
    return await analytics_service.tendencia(granularidade, origem=origem)


@router.get("/por-profissao")
async def por_profissao(recentes: bool = False):
    """Predicoes agrupadas por job; recentes=true conta so a ultima de cada cliente."""
    return await analytics_service.por_profissao(apenas_recentes=recentes)
