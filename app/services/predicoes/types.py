"""
Tipos de predicoes (resultados de pontuacao).
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from app.core.timezone import parse_timestamp


class ClassePredita(str, Enum):
    """Classe binaria devolvida pelo servico de ML."""

    SIM = "YES"
    NAO = "NO"

    @classmethod
    def parse(cls, valor) -> Optional["ClassePredita"]:
        """Aceita YES/NO em qualquer caixa; outro valor retorna None."""
        if isinstance(valor, ClassePredita):
            return valor
        if not isinstance(valor, str):
            return None
        try:
            return cls(valor.strip().upper())
        except ValueError:
            return None


# Politica de desempate quando so ha probabilidades: 0.5/0.5 vira SIM
CLASSE_EMPATE = ClassePredita.SIM

ORIGEM_PREDICAO_AVULSA = "single_predict"
ORIGEM_IMPORTACAO = "import_auto_predict"


def origem_campanha(campanha_id: str) -> str:
    """Tag de origem das predicoes geradas por execucao de campanha."""
    return f"campanha:{campanha_id}"


@dataclass
class Predicao:
    """Uma pontuacao persistida para um cliente."""

    id: str
    cliente_id: str
    classe_predita: ClassePredita
    probabilidade_sim: float
    probabilidade_nao: float
    origem: str
    timestamp: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "Predicao":
        """Cria a partir de linha do banco."""
        classe = ClassePredita.parse(row.get("classe_predita"))
        if classe is None:
            raise ValueError(f"classe_predita invalida: {row.get('classe_predita')!r}")
        timestamp = row.get("timestamp")
        return cls(
            id=str(row.get("id", "")),
            cliente_id=str(row["cliente_id"]),
            classe_predita=classe,
            probabilidade_sim=float(row.get("probabilidade_sim", 0.0)),
            probabilidade_nao=float(row.get("probabilidade_nao", 0.0)),
            origem=row.get("origem", ""),
            timestamp=parse_timestamp(timestamp) if timestamp else None,
        )

    def to_dict(self) -> dict:
        """Converte para dicionario (resposta de API)."""
        return {
            "id": self.id,
            "cliente_id": self.cliente_id,
            "classe_predita": self.classe_predita.value,
            "probabilidade_sim": self.probabilidade_sim,
            "probabilidade_nao": self.probabilidade_nao,
            "origem": self.origem,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    @property
    def positiva(self) -> bool:
        return self.classe_predita == ClassePredita.SIM
