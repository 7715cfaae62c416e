"""
Agregacao de predicoes por periodo (dia, semana ISO, mes) em UTC.

Chaves:
- day:   YYYY-MM-DD
- week:  YYYY-W## (ano e semana ISO)
- month: YYYY-MM

As chaves ordenam lexicograficamente na ordem cronologica. Periodos sem
predicao nao aparecem.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Union

from app.core.exceptions import ValidationError
from app.core.timezone import parse_timestamp
from app.services.predicoes.types import ClassePredita, Predicao


class Granularidade(str, Enum):
    DIA = "day"
    SEMANA = "week"
    MES = "month"

    @classmethod
    def parse(cls, valor) -> "Granularidade":
        """
        Raises:
            ValidationError: Granularidade desconhecida
        """
        if isinstance(valor, Granularidade):
            return valor
        try:
            return cls(str(valor).strip().lower())
        except ValueError:
            raise ValidationError(
                "Granularidade invalida",
                {"valor": valor, "aceitas": [g.value for g in cls]},
            ) from None


def chave_periodo(momento: datetime, granularidade: Granularidade) -> str:
    """Chave do periodo de um instante (ja em UTC)."""
    if granularidade == Granularidade.DIA:
        return momento.strftime("%Y-%m-%d")
    if granularidade == Granularidade.SEMANA:
        ano, semana, _ = momento.isocalendar()
        return f"{ano:04d}-W{semana:02d}"
    return momento.strftime("%Y-%m")


@dataclass
class BucketTendencia:
    bucket: str
    positive: int = 0
    negative: int = 0

    def to_dict(self) -> dict:
        return {"bucket": self.bucket, "positive": self.positive, "negative": self.negative}


RegistroPredicao = Union[Predicao, Mapping[str, Any]]


def _timestamp_e_classe(predicao: RegistroPredicao):
    if isinstance(predicao, Predicao):
        return predicao.timestamp, predicao.classe_predita
    return predicao.get("timestamp"), ClassePredita.parse(predicao.get("classe_predita"))


def agrupar_por_periodo(
    predicoes: Iterable[RegistroPredicao],
    granularidade: Union[str, Granularidade],
) -> List[dict]:
    """
    Conta positivos e negativos por periodo.

    Args:
        predicoes: Predicao ou dict com timestamp (datetime ou ISO) e classe_predita
        granularidade: day, week ou month

    Returns:
        [{"bucket", "positive", "negative"}] ordenado por bucket

    Raises:
        ValidationError: Granularidade desconhecida
    """
    granularidade = Granularidade.parse(granularidade)
    buckets: Dict[str, BucketTendencia] = {}

    for predicao in predicoes:
        timestamp, classe = _timestamp_e_classe(predicao)
        if timestamp is None or classe is None:
            continue
        chave = chave_periodo(parse_timestamp(timestamp), granularidade)
        bucket = buckets.setdefault(chave, BucketTendencia(chave))
        if classe == ClassePredita.SIM:
            bucket.positive += 1
        else:
            bucket.negative += 1

    return [buckets[chave].to_dict() for chave in sorted(buckets)]


def agrupar_por_atributo(
    pares: Iterable[tuple],
    normalizar: Callable[[Any], str] = lambda v: str(v) if v is not None else "unknown",
) -> List[dict]:
    """
    Conta positivos e negativos por valor de atributo.

    Args:
        pares: (valor_do_atributo, Predicao)

    Returns:
        [{"valor", "positive", "negative", "total"}] do maior total para o menor
    """
    contagem: Dict[str, Dict[str, int]] = defaultdict(lambda: {"positive": 0, "negative": 0})
    for valor, predicao in pares:
        chave = normalizar(valor)
        if predicao.positiva:
            contagem[chave]["positive"] += 1
        else:
            contagem[chave]["negative"] += 1

    linhas = [
        {"valor": chave, **c, "total": c["positive"] + c["negative"]}
        for chave, c in contagem.items()
    ]
    return sorted(linhas, key=lambda linha: (-linha["total"], linha["valor"]))
