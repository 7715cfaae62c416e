"""
Segmentacao de clientes para campanhas.

Estrutura:
- criterios: Expressao de criterios e avaliador
- resolvedor: Resolucao do publico-alvo (memoria ou banco)
"""
from app.services.segmentacao.criterios import (
    Criterios,
    Disjuncao,
    Igualdade,
    Intervalo,
    Pertinencia,
    RestricaoInvalida,
    corresponde,
)
from app.services.segmentacao.resolvedor import (
    ResolvedorAlvos,
    filtrar_clientes,
    filtros_nativos,
    resolver_alvos,
)

__all__ = [
    "Criterios",
    "Disjuncao",
    "Igualdade",
    "Intervalo",
    "Pertinencia",
    "RestricaoInvalida",
    "corresponde",
    "ResolvedorAlvos",
    "filtrar_clientes",
    "filtros_nativos",
    "resolver_alvos",
]
