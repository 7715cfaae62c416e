"""
Tipos e enums para campanhas.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from app.core.timezone import parse_timestamp


class StatusCampanha(str, Enum):
    """Status possiveis de uma campanha."""

    RASCUNHO = "rascunho"
    EXECUTANDO = "executando"
    CONCLUIDA = "concluida"
    CANCELADA = "cancelada"


def _timestamp(valor) -> Optional[datetime]:
    return parse_timestamp(valor) if valor else None


@dataclass
class CampanhaData:
    """Dados de uma campanha."""

    id: str
    nome: str
    criterios: dict = field(default_factory=dict)
    total_alvos: int = 0
    positivos: int = 0
    negativos: int = 0
    status: StatusCampanha = StatusCampanha.RASCUNHO
    ultima_execucao_em: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_db_row(cls, row: dict) -> "CampanhaData":
        """Cria a partir de linha do banco."""
        # Parse status com fallback
        status_raw = row.get("status", "rascunho")
        try:
            status = StatusCampanha(status_raw)
        except ValueError:
            status = StatusCampanha.RASCUNHO

        return cls(
            id=str(row["id"]),
            nome=row.get("nome", ""),
            criterios=row.get("criterios") or {},
            total_alvos=row.get("total_alvos") or 0,
            positivos=row.get("positivos") or 0,
            negativos=row.get("negativos") or 0,
            status=status,
            ultima_execucao_em=_timestamp(row.get("ultima_execucao_em")),
            created_at=_timestamp(row.get("created_at")),
            updated_at=_timestamp(row.get("updated_at")),
        )

    @property
    def taxa_conversao(self) -> float:
        """positivos / total_alvos (0 sem alvos)."""
        if not self.total_alvos:
            return 0.0
        return round(self.positivos / self.total_alvos, 4)

    def to_dict(self) -> dict:
        """Converte para dicionario."""
        return {
            "id": self.id,
            "nome": self.nome,
            "criterios": self.criterios,
            "total_alvos": self.total_alvos,
            "positivos": self.positivos,
            "negativos": self.negativos,
            "taxa_conversao": self.taxa_conversao,
            "status": self.status.value,
            "ultima_execucao_em": (
                self.ultima_execucao_em.isoformat() if self.ultima_execucao_em else None
            ),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class Contadores:
    """Agregados de uma campanha."""

    total_alvos: int
    positivos: int
    negativos: int

    def __post_init__(self):
        if self.positivos + self.negativos > self.total_alvos:
            raise ValueError(
                f"Contadores inconsistentes: {self.positivos}+{self.negativos} > {self.total_alvos}"
            )

    def to_dict(self) -> dict:
        return {
            "total_alvos": self.total_alvos,
            "positivos": self.positivos,
            "negativos": self.negativos,
        }


@dataclass
class ResultadoExecucao:
    """Relatorio de uma execucao de campanha."""

    campanha_id: str
    total_alvos: int
    pontuados: int
    falhas_mapeamento: int = 0
    falhas_oraculo: int = 0
    positivos: int = 0
    negativos: int = 0
    cancelada: bool = False

    @property
    def falhas(self) -> int:
        return self.falhas_mapeamento + self.falhas_oraculo

    @property
    def taxa_conversao(self) -> float:
        if not self.total_alvos:
            return 0.0
        return round(self.positivos / self.total_alvos, 4)

    def to_dict(self) -> dict:
        return {
            "campanha_id": self.campanha_id,
            "total_alvos": self.total_alvos,
            "pontuados": self.pontuados,
            "falhas": self.falhas,
            "falhas_mapeamento": self.falhas_mapeamento,
            "falhas_oraculo": self.falhas_oraculo,
            "positivos": self.positivos,
            "negativos": self.negativos,
            "cancelada": self.cancelada,
            "taxa_conversao": self.taxa_conversao,
        }
