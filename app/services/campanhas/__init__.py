"""
Modulo de campanhas.

Estrutura:
- types: Tipos e enums
- repository: Acesso ao banco de dados
- executor: Execucao (resolucao + pontuacao + contadores)
- contadores: Recalculo dos contadores a partir das predicoes
- service: CRUD e orquestracao usados pelas rotas
"""
from app.services.campanhas.contadores import ContadoresCampanha, contar_resultados
from app.services.campanhas.executor import CampanhaExecutor
from app.services.campanhas.repository import CampanhaRepository
from app.services.campanhas.service import CampanhaService, campanha_service
from app.services.campanhas.types import (
    CampanhaData,
    Contadores,
    ResultadoExecucao,
    StatusCampanha,
)

__all__ = [
    "CampanhaExecutor",
    "CampanhaRepository",
    "CampanhaService",
    "campanha_service",
    "ContadoresCampanha",
    "contar_resultados",
    "CampanhaData",
    "Contadores",
    "ResultadoExecucao",
    "StatusCampanha",
]
