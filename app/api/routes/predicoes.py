"""
Endpoints de predicoes: listagem, pontuacao avulsa e correcao.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from app.core.exceptions import ValidationError
from app.services.predicoes.repository import FiltroPredicoes
from app.services.predicoes.service import predicao_service
from app.services.predicoes.types import ClassePredita

router = APIRouter(prefix="/predicoes", tags=["predicoes"])


class CorrigirPredicaoRequest(BaseModel):
    """Campos opcionais; ao menos um precisa vir."""
    classe_predita: Optional[str] = Field(None, description="YES ou NO")
    probabilidade_sim: Optional[float] = None
    probabilidade_nao: Optional[float] = None


class PontuarClientesRequest(BaseModel):
    cliente_ids: List[str] = Field(..., min_length=1)


@router.get("/")
async def listar_predicoes(
    classe: Optional[str] = None,
    cliente_id: Optional[str] = None,
    origem: Optional[str] = None,
    prob_sim_min: Optional[float] = Query(None, ge=0, le=1),
    prob_sim_max: Optional[float] = Query(None, ge=0, le=1),
    desde: Optional[datetime] = None,
    ate: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    """Lista predicoes mais recentes primeiro."""
    classe_filtro = None
    if classe is not None:
        classe_filtro = ClassePredita.parse(classe)
        if classe_filtro is None:
            raise ValidationError("classe deve ser YES ou NO", {"valor": classe})

    filtro = FiltroPredicoes(
        classe=classe_filtro,
        cliente_id=cliente_id,
        origem=origem,
        prob_sim_min=prob_sim_min,
        prob_sim_max=prob_sim_max,
        desde=desde,
        ate=ate,
    )
    predicoes = await predicao_service.listar(filtro, limit=limit, offset=offset)
    return [p.to_dict() for p in predicoes]


@router.post("/cliente/{cliente_id}")
async def prever_cliente(cliente_id: str):
    """Pontua um cliente agora (origem single_predict)."""
    predicao = await predicao_service.prever_cliente(cliente_id)
    return predicao.to_dict()


@router.post("/importacao")
async def pontuar_importados(dados: PontuarClientesRequest):
    """Pontua clientes recem-importados (origem import_auto_predict)."""
    resultado = await predicao_service.pontuar_clientes(dados.cliente_ids)
    return {
        "solicitados": len(dados.cliente_ids),
        "pontuados": resultado.pontuados,
        "falhas_mapeamento": resultado.falhas_mapeamento,
        "falhas_oraculo": resultado.falhas_oraculo,
        "positivos": resultado.positivos,
        "negativos": resultado.negativos,
    }


@router.patch("/{predicao_id}")
async def corrigir_predicao(predicao_id: str, dados: CorrigirPredicaoRequest):
    """Correcao manual; probabilidades sao renormalizadas e a classe rederivada."""
    predicao = await predicao_service.corrigir(
        predicao_id,
        classe=dados.classe_predita,
        probabilidade_sim=dados.probabilidade_sim,
        probabilidade_nao=dados.probabilidade_nao,
    )
    return predicao.to_dict()
