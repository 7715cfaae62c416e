"""
Resolucao do publico-alvo de uma campanha.

Restricoes simples de topo (igualdade, pertinencia, intervalo numerico)
vao para o banco como filtro nativo, so para reduzir a varredura. O
resultado passa sempre pelo avaliador em memoria, entao a semantica e
exatamente a de `corresponde`.
"""
import logging
import math
import uuid
from typing import Any, Iterable, List, Mapping, Optional, Union

from app.repositories.base import FiltroNativo
from app.repositories.cliente import (
    CAMPOS_INTEIROS,
    CAMPOS_NUMERICOS,
    CAMPOS_TEXTO,
    CAMPOS_UUID,
    Cliente,
    ClienteRepository,
)
from app.services.segmentacao.criterios import (
    Criterios,
    Igualdade,
    Intervalo,
    Pertinencia,
    RestricaoInvalida,
    corresponde,
)

logger = logging.getLogger(__name__)

RegistroCliente = Union[Cliente, Mapping[str, Any]]


def _registro(cliente: RegistroCliente) -> Mapping[str, Any]:
    if isinstance(cliente, Cliente):
        return cliente.as_registro()
    return cliente


def _id(cliente: RegistroCliente) -> str:
    if isinstance(cliente, Cliente):
        return cliente.id
    return str(cliente["id"])


def filtrar_clientes(criterios, clientes: Iterable[RegistroCliente]) -> list:
    """Clientes que atendem os criterios, na ordem de entrada."""
    criterios = Criterios.from_dict(criterios)
    return [c for c in clientes if corresponde(criterios, _registro(c))]


def resolver_alvos(criterios, clientes: Iterable[RegistroCliente]) -> set[str]:
    """
    IDs dos clientes que atendem os criterios.

    Sem garantia de ordem; quem precisa de determinismo ordena.
    Colecao vazia retorna set vazio.
    """
    return {_id(c) for c in filtrar_clientes(criterios, clientes)}


# Faixa do INTEGER do Postgres; fora dela o PostgREST rejeita o filtro
_INT_MIN, _INT_MAX = -(2 ** 31), 2 ** 31 - 1


def _uuid_valido(valor: Any) -> bool:
    if not isinstance(valor, str):
        return False
    try:
        uuid.UUID(valor)
    except ValueError:
        return False
    return True


def _numero(valor: Any) -> bool:
    return isinstance(valor, (int, float)) and not isinstance(valor, bool) and math.isfinite(valor)


def _valor_nativo(campo: str, valor: Any) -> Optional[Any]:
    """
    Valor pronto para comparar na coluna, ou None se o banco rejeitaria.

    Coluna UUID so recebe UUID valido; coluna INTEGER so recebe inteiro
    na faixa do tipo. O que fica de fora o filtro em memoria resolve.
    """
    if campo in CAMPOS_UUID:
        return valor if _uuid_valido(valor) else None
    if campo in CAMPOS_TEXTO:
        return valor if isinstance(valor, str) else None
    if campo in CAMPOS_INTEIROS:
        if not _numero(valor) or valor != int(valor):
            return None
        inteiro = int(valor)
        return inteiro if _INT_MIN <= inteiro <= _INT_MAX else None
    if campo in CAMPOS_NUMERICOS:
        return valor if _numero(valor) else None
    return None


def _limite_nativo(campo: str, operador: str, limite: Any) -> Optional[FiltroNativo]:
    if campo in CAMPOS_INTEIROS and _numero(limite) and limite != int(limite):
        # Limite fracionario em coluna inteira: gt/gte viram gte(ceil), lt/lte viram lte(floor)
        if operador in ("gt", "gte"):
            operador, limite = "gte", math.ceil(limite)
        else:
            operador, limite = "lte", math.floor(limite)
    valor = _valor_nativo(campo, limite)
    if valor is None:
        return None
    return FiltroNativo(operador, campo, valor)


def filtros_nativos(criterios: Criterios) -> List[FiltroNativo]:
    """
    Traduz as restricoes de topo que o banco avalia sem risco.

    Tudo que fica de fora (OR, texto em intervalo, valores que a coluna
    nao aceita, colunas desconhecidas) so alarga o resultado; o filtro
    em memoria corrige depois.
    """
    filtros = []
    for campo, restricao in criterios.campos:
        if isinstance(restricao, Igualdade):
            valor = _valor_nativo(campo, restricao.valor)
            if valor is not None:
                filtros.append(FiltroNativo("eq", campo, valor))
        elif isinstance(restricao, Pertinencia):
            valores = tuple(_valor_nativo(campo, v) for v in restricao.valores)
            if valores and all(v is not None for v in valores):
                filtros.append(FiltroNativo("in", campo, valores))
        elif isinstance(restricao, Intervalo):
            if campo in CAMPOS_NUMERICOS:
                for operador, limite in restricao.limites().items():
                    filtro = _limite_nativo(campo, operador, limite)
                    if filtro is not None:
                        filtros.append(filtro)
    return filtros


class ResolvedorAlvos:
    """Resolve alvos contra a tabela de clientes."""

    def __init__(self, cliente_repo: Optional[ClienteRepository] = None):
        self._cliente_repo = cliente_repo

    @property
    def cliente_repo(self) -> ClienteRepository:
        if self._cliente_repo is None:
            from app.repositories.deps import get_cliente_repo

            self._cliente_repo = get_cliente_repo()
        return self._cliente_repo

    async def resolver_clientes(self, criterios) -> List[Cliente]:
        """
        Busca os clientes que atendem os criterios.

        Raises:
            DatabaseError: Falha de leitura na base de clientes
        """
        criterios = Criterios.from_dict(criterios)

        problemas = criterios.problemas()
        if problemas:
            logger.warning(f"Criterios com restricoes invalidas (nao casam): {problemas}")
        if any(isinstance(r, RestricaoInvalida) for _, r in criterios.campos):
            # AND com restricao invalida nunca casa
            return []

        candidatos = await self.cliente_repo.listar_todos(filtros_nativos(criterios))
        alvos = filtrar_clientes(criterios, candidatos)
        logger.info(f"Resolucao de alvos: {len(alvos)} de {len(candidatos)} candidatos")
        return alvos

    async def resolver(self, criterios) -> set[str]:
        """IDs dos clientes que atendem os criterios."""
        return {c.id for c in await self.resolver_clientes(criterios)}
