"""
Endpoints para gerenciamento de campanhas.

Toda a logica fica no CampanhaService; erros de dominio viram HTTP nos
handlers de app.api.error_handlers.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from app.services.campanhas import campanha_service

router = APIRouter(prefix="/campanhas", tags=["campanhas"])


class CriarCampanhaRequest(BaseModel):
    """Schema de entrada para criacao de campanha."""
    nome: str = Field(..., description="Nome da campanha")
    criterios: Dict[str, Any] = Field(
        default_factory=dict,
        description="Criterios de publico, ex: {\"contact\": \"cellular\", \"age\": {\"gte\": 30}}",
    )


class AtualizarCampanhaRequest(BaseModel):
    nome: Optional[str] = None
    criterios: Optional[Dict[str, Any]] = Field(
        None, description="Substitui os criterios inteiros"
    )
    recalcular: bool = Field(True, description="Recalcular contadores ao trocar criterios")


class PreviewRequest(BaseModel):
    criterios: Dict[str, Any] = Field(default_factory=dict)


@router.post("/")
async def criar_campanha(dados: CriarCampanhaRequest):
    """Cria nova campanha com contadores zerados."""
    campanha = await campanha_service.criar(dados.nome, dados.criterios)
    return campanha.to_dict()


@router.get("/")
async def listar_campanhas(
    busca: Optional[str] = None,
    status: Optional[str] = None,
    ordem: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """Lista campanhas, filtrando por trecho do nome e status."""
    campanhas = await campanha_service.listar(
        busca=busca, status=status, limit=limit, offset=offset, ordem_desc=ordem == "desc"
    )
    return [c.to_dict() for c in campanhas]


@router.post("/preview")
async def preview_publico(dados: PreviewRequest):
    """Conta o publico de um conjunto de criterios sem criar campanha."""
    return await campanha_service.preview(dados.criterios)


@router.get("/{campanha_id}")
async def buscar_campanha(campanha_id: str):
    campanha = await campanha_service.buscar(campanha_id)
    return campanha.to_dict()


@router.patch("/{campanha_id}")
async def atualizar_campanha(campanha_id: str, dados: AtualizarCampanhaRequest):
    """
    Atualiza nome e/ou criterios.

    Trocar criterios recalcula os contadores (desligue com recalcular=false).
    """
    campanha = await campanha_service.atualizar(
        campanha_id,
        nome=dados.nome,
        criterios=dados.criterios,
        recalcular=dados.recalcular,
    )
    return campanha.to_dict()


@router.delete("/{campanha_id}")
async def deletar_campanha(campanha_id: str):
    """Remove a campanha e as predicoes geradas por ela."""
    removidas = await campanha_service.deletar(campanha_id)
    return {"status": "removida", "predicoes_removidas": removidas}


@router.post("/{campanha_id}/executar")
async def executar_campanha(campanha_id: str):
    """
    Executa a campanha: resolve alvos, pontua no ML e grava contadores.

    409 se ja houver execucao da mesma campanha.
    """
    resultado = await campanha_service.executar(campanha_id)
    return resultado.to_dict()


@router.post("/{campanha_id}/recalcular")
async def recalcular_contadores(campanha_id: str):
    """Recalcula contadores a partir das predicoes gravadas (sem chamar o ML)."""
    contadores = await campanha_service.recalcular(campanha_id)
    return {"campanha_id": campanha_id, **contadores.to_dict()}


@router.post("/{campanha_id}/cancelar")
async def cancelar_execucao(campanha_id: str):
    cancelada = campanha_service.cancelar(campanha_id)
    return {"campanha_id": campanha_id, "cancelamento_solicitado": cancelada}
