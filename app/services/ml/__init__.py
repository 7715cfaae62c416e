"""
Integracao com o servico de ML.

Estrutura:
- mapper: Cliente -> payload do modelo
- oraculo: Cliente HTTP do endpoint de predicao
"""
from app.services.ml.mapper import MlMapper
from app.services.ml.oraculo import ClienteOraculo, RespostaOraculo, get_cliente_oraculo

__all__ = [
    "MlMapper",
    "ClienteOraculo",
    "RespostaOraculo",
    "get_cliente_oraculo",
]
