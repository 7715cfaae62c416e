"""
Regras de probabilidade das predicoes.

probabilidade_sim + probabilidade_nao deve dar 1. Desvio ate a tolerancia
(0.05) e aceito como veio; acima disso o par e renormalizado. Valores
gravados ficam com 4 casas.
"""
from typing import Optional, Tuple

from app.core.exceptions import ValidationError
from app.services.predicoes.types import CLASSE_EMPATE, ClassePredita

CASAS_DECIMAIS = 4
TOLERANCIA_PADRAO = 0.05


def _no_intervalo(valor: float) -> bool:
    return 0.0 <= valor <= 1.0


def normalizar_probabilidades(
    prob_sim: Optional[float] = None,
    prob_nao: Optional[float] = None,
    tolerancia: float = TOLERANCIA_PADRAO,
) -> Tuple[Optional[float], Optional[float]]:
    """
    Valida e normaliza o par de probabilidades.

    Args:
        prob_sim: Probabilidade da classe positiva
        prob_nao: Probabilidade da classe negativa
        tolerancia: Desvio aceito na soma

    Returns:
        (prob_sim, prob_nao). Se so uma veio, a outra e o complemento.
        (None, None) se nenhuma veio.

    Raises:
        ValidationError: Probabilidade fora de [0, 1] ou par somando 0
    """
    if prob_sim is None and prob_nao is None:
        return None, None

    if prob_sim is not None and not _no_intervalo(prob_sim):
        raise ValidationError("probabilidade_sim deve estar entre 0 e 1", {"valor": prob_sim})
    if prob_nao is not None and not _no_intervalo(prob_nao):
        raise ValidationError("probabilidade_nao deve estar entre 0 e 1", {"valor": prob_nao})

    if prob_sim is not None and prob_nao is not None:
        soma = prob_sim + prob_nao
        if soma == 0:
            raise ValidationError("probabilidades nao podem ser ambas zero")
        if abs(soma - 1) > tolerancia:
            prob_sim, prob_nao = prob_sim / soma, prob_nao / soma
        return round(prob_sim, CASAS_DECIMAIS), round(prob_nao, CASAS_DECIMAIS)

    if prob_sim is not None:
        return round(prob_sim, CASAS_DECIMAIS), round(1 - prob_sim, CASAS_DECIMAIS)
    return round(1 - prob_nao, CASAS_DECIMAIS), round(prob_nao, CASAS_DECIMAIS)


def derivar_classe(prob_sim: float, prob_nao: float) -> ClassePredita:
    """Classe pela maior probabilidade; empate fica com CLASSE_EMPATE."""
    if prob_sim > prob_nao:
        return ClassePredita.SIM
    if prob_nao > prob_sim:
        return ClassePredita.NAO
    return CLASSE_EMPATE
