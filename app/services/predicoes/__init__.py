"""
Modulo de predicoes.

Estrutura:
- types: Predicao, classes e origens
- probabilidades: Normalizacao e desempate
- repository: Acesso ao banco de dados
- lote: Pontuacao em lote com pool de workers
- service: Pontuacao avulsa, importacao e correcao
"""
from app.services.predicoes.types import (
    CLASSE_EMPATE,
    ORIGEM_IMPORTACAO,
    ORIGEM_PREDICAO_AVULSA,
    ClassePredita,
    Predicao,
    origem_campanha,
)

__all__ = [
    "CLASSE_EMPATE",
    "ORIGEM_IMPORTACAO",
    "ORIGEM_PREDICAO_AVULSA",
    "ClassePredita",
    "Predicao",
    "origem_campanha",
]
