"""
Analytics de predicoes.

Estrutura:
- tendencia: Agregacao por periodo e por atributo
- service: Visao geral, tendencia e quebra por profissao
"""
from app.services.analytics.tendencia import (
    BucketTendencia,
    Granularidade,
    agrupar_por_atributo,
    agrupar_por_periodo,
)

__all__ = [
    "BucketTendencia",
    "Granularidade",
    "agrupar_por_atributo",
    "agrupar_por_periodo",
]
