"""
Mapeamento Cliente -> payload do servico de ML.

Categorias fora do vocabulario do modelo caem em um valor padrao; nunca
rejeitamos por categoria. So falha (MapeamentoError) quando um campo
numerico exigido esta ausente ou nao e numero.
"""
import math
from numbers import Real
from typing import Any

from app.core.exceptions import MapeamentoError
from app.repositories.cliente import Cliente

# Vocabulario aceito pelo modelo
JOBS_VALIDOS = (
    "blue_collar",
    "housemaid",
    "services",
    "admin",
    "technician",
    "management",
    "self_employed",
    "entrepreneur",
    "unemployed",
    "student",
)
JOB_PADRAO = "unemployed"  # retired, unknown e qualquer outro

CONTATOS_VALIDOS = ("cellular", "telephone")
CONTATO_PADRAO = "cellular"

DIAS_VALIDOS = ("mon", "tue", "wed", "thu", "fri")
DIA_PADRAO = "mon"

MESES_VALIDOS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
MES_PADRAO = "may"  # mes mais frequente na base de treino

POUTCOMES_VALIDOS = ("failure", "nonexistent", "success")
POUTCOME_PADRAO = "nonexistent"

EDUCACAO = {
    "basic.4y": {"type": "school", "level": "primary", "grade": 4},
    "basic.6y": {"type": "school", "level": "primary", "grade": 6},
    "basic.9y": {"type": "school", "level": "middle", "grade": 9},
    "high.school": {"type": "school", "level": "high", "grade": 12},
    "professional.course": {"type": "university"},
    "university.degree": {"type": "university"},
    "illiterate": {"type": "illiterate"},
}
EDUCACAO_PADRAO = {"type": "university"}


def categoria_idade(idade: float) -> str:
    """Faixa etaria usada pelo modelo."""
    if idade < 30:
        return "struggling"
    if idade <= 50:
        return "stable"
    if idade <= 65:
        return "about to retire"
    return "old age"


def _texto(valor: Any) -> str:
    return valor.strip().lower() if isinstance(valor, str) else ""


def _categoria(valor: Any, validos: tuple, padrao: str) -> str:
    texto = _texto(valor)
    return texto if texto in validos else padrao


def normalizar_job(job: Any) -> str:
    """'admin.' -> admin, 'blue-collar' -> blue_collar; fora da lista -> unemployed."""
    texto = _texto(job).replace(".", "").replace("-", "_")
    return texto if texto in JOBS_VALIDOS else JOB_PADRAO


def normalizar_estado_civil(marital: Any) -> str:
    """Modelo so conhece married/single."""
    return "married" if _texto(marital) == "married" else "single"


def mapear_educacao(education: Any) -> dict:
    return dict(EDUCACAO.get(_texto(education), EDUCACAO_PADRAO))


def sim_nao(valor: Any) -> bool:
    """yes -> True; no, unknown, vazio -> False."""
    if isinstance(valor, bool):
        return valor
    return _texto(valor) == "yes"


def _numero(cliente: Cliente, campo: str, inteiro: bool = False):
    valor = getattr(cliente, campo, None)
    if isinstance(valor, bool) or not isinstance(valor, Real) or not math.isfinite(valor):
        raise MapeamentoError(campo, cliente_id=cliente.id or None, valor=valor)
    if inteiro:
        if valor != int(valor):
            raise MapeamentoError(campo, cliente_id=cliente.id or None, valor=valor)
        return int(valor)
    return float(valor)


class MlMapper:
    """Monta o payload canonico do endpoint /api/predict."""

    @staticmethod
    def para_payload(cliente: Cliente) -> dict:
        """
        Converte o cliente no payload do modelo.

        Raises:
            MapeamentoError: Campo numerico ausente ou invalido
        """
        idade = _numero(cliente, "age", inteiro=True)

        return {
            "personal_info": {
                "age": idade,
                "age_category": categoria_idade(idade),
                "job": normalizar_job(cliente.job),
                "marital": normalizar_estado_civil(cliente.marital),
                "education": mapear_educacao(cliente.education),
            },
            "financial_info": {
                "default": sim_nao(cliente.credit_default),
                "housing": sim_nao(cliente.housing),
                "loan": sim_nao(cliente.loan),
            },
            "contact_info": {
                "contact": _categoria(cliente.contact, CONTATOS_VALIDOS, CONTATO_PADRAO),
                "day_of_week": _categoria(cliente.day_of_week, DIAS_VALIDOS, DIA_PADRAO),
                "month": _categoria(cliente.month, MESES_VALIDOS, MES_PADRAO),
            },
            "campaign_info": {
                "campaign": _numero(cliente, "campaign", inteiro=True),
                "previous": _numero(cliente, "previous", inteiro=True),
                "poutcome": _categoria(cliente.poutcome, POUTCOMES_VALIDOS, POUTCOME_PADRAO),
                "cons_conf_idx": _numero(cliente, "cons_conf_idx"),
            },
        }
