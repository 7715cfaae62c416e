"""
Criterios de audiencia das campanhas.

Formato (JSON salvo com a campanha):

    {
        "contact": "cellular",                  # igualdade
        "job": {"in": ["admin.", "student"]},   # pertinencia
        "age": {"gte": 30, "lt": 40},           # intervalo (limites combinaveis)
        "OR": [{"job": "student"}, {"marital": "single"}],
    }

Campos de topo sao combinados com AND. "OR" recebe uma lista de
sub-criterios; basta um deles casar por inteiro.

O JSON e convertido uma vez em tipos explicitos (Igualdade, Pertinencia,
Intervalo, Disjuncao). Qualquer formato fora disso vira RestricaoInvalida,
que nunca casa: o erro fica no log, nao derruba a execucao em lote.
"""
import logging
from dataclasses import dataclass
from numbers import Real
from typing import Any, Mapping, Optional, Union

logger = logging.getLogger(__name__)

CHAVE_OU = "OR"
CHAVE_IN = "in"
LIMITES = ("lt", "lte", "gt", "gte")


@dataclass(frozen=True)
class Igualdade:
    """Valor literal; compara com igualdade estrita."""

    valor: Any


@dataclass(frozen=True)
class Pertinencia:
    """Valor do registro deve ser um dos valores listados."""

    valores: tuple


@dataclass(frozen=True)
class Intervalo:
    """Limites presentes valem ao mesmo tempo; ausentes (None) nao sao aplicados."""

    lt: Any = None
    lte: Any = None
    gt: Any = None
    gte: Any = None

    def limites(self) -> dict:
        return {k: getattr(self, k) for k in LIMITES if getattr(self, k) is not None}


@dataclass(frozen=True)
class RestricaoInvalida:
    """Formato nao reconhecido. Sempre avalia como nao satisfeita."""

    bruto: Any
    motivo: str


Restricao = Union[Igualdade, Pertinencia, Intervalo, RestricaoInvalida]


@dataclass(frozen=True)
class Disjuncao:
    """Clausula OR: lista de sub-criterios, basta um casar."""

    alternativas: tuple["Criterios", ...]


@dataclass(frozen=True)
class Criterios:
    """Expressao de criterios ja convertida."""

    campos: tuple[tuple[str, Restricao], ...] = ()
    ou: Union[Disjuncao, RestricaoInvalida, None] = None

    @property
    def vazio(self) -> bool:
        """Criterios vazios casam com toda a base."""
        return not self.campos and self.ou is None

    @classmethod
    def from_dict(cls, data: Any) -> "Criterios":
        """
        Converte o JSON de criterios.

        Nunca levanta excecao: formatos invalidos viram RestricaoInvalida.
        None e tratado como {} (toda a base).
        """
        if data is None:
            return cls()
        if isinstance(data, Criterios):
            return data
        if not isinstance(data, Mapping):
            return cls(campos=(("*", RestricaoInvalida(data, "criterios devem ser um objeto")),))

        campos = []
        ou = None
        for campo, bruto in data.items():
            if campo == CHAVE_OU:
                ou = _converter_ou(bruto)
            else:
                campos.append((str(campo), converter_restricao(bruto)))
        return cls(campos=tuple(campos), ou=ou)

    def problemas(self) -> list[str]:
        """Lista legivel das restricoes invalidas (inclui as de dentro do OR)."""
        encontrados = [
            f"{campo}: {restricao.motivo}"
            for campo, restricao in self.campos
            if isinstance(restricao, RestricaoInvalida)
        ]
        if isinstance(self.ou, RestricaoInvalida):
            encontrados.append(f"{CHAVE_OU}: {self.ou.motivo}")
        elif isinstance(self.ou, Disjuncao):
            for i, alternativa in enumerate(self.ou.alternativas):
                encontrados.extend(f"{CHAVE_OU}[{i}].{p}" for p in alternativa.problemas())
        return encontrados


def _eh_numero(valor: Any) -> bool:
    return isinstance(valor, Real) and not isinstance(valor, bool)


def _eh_literal(valor: Any) -> bool:
    return valor is None or isinstance(valor, (str, bool)) or _eh_numero(valor)


def _converter_ou(bruto: Any) -> Union[Disjuncao, RestricaoInvalida]:
    if not isinstance(bruto, (list, tuple)):
        return RestricaoInvalida(bruto, "OR deve ser uma lista")
    alternativas = []
    for item in bruto:
        if not isinstance(item, Mapping):
            return RestricaoInvalida(bruto, "itens do OR devem ser objetos")
        alternativas.append(Criterios.from_dict(item))
    return Disjuncao(tuple(alternativas))


def converter_restricao(bruto: Any) -> Restricao:
    """Converte o valor de um campo em uma das restricoes suportadas."""
    if _eh_literal(bruto):
        return Igualdade(bruto)

    if not isinstance(bruto, Mapping):
        return RestricaoInvalida(bruto, f"tipo nao suportado: {type(bruto).__name__}")

    chaves = set(bruto.keys())
    if not chaves:
        return RestricaoInvalida(bruto, "objeto vazio")

    if chaves == {CHAVE_IN}:
        valores = bruto[CHAVE_IN]
        if not isinstance(valores, (list, tuple)):
            return RestricaoInvalida(bruto, "'in' deve ser uma lista")
        if not all(_eh_literal(v) for v in valores):
            return RestricaoInvalida(bruto, "'in' aceita apenas valores simples")
        return Pertinencia(tuple(valores))

    if chaves <= set(LIMITES):
        limites = dict(bruto)
        tipos = set()
        for nome, limite in limites.items():
            if _eh_numero(limite):
                tipos.add("numero")
            elif isinstance(limite, str):
                tipos.add("texto")
            else:
                return RestricaoInvalida(bruto, f"limite '{nome}' deve ser numero ou texto")
        if len(tipos) > 1:
            return RestricaoInvalida(bruto, "limites misturam numero e texto")
        return Intervalo(**limites)

    desconhecidas = sorted(str(c) for c in chaves - set(LIMITES) - {CHAVE_IN})
    if desconhecidas:
        return RestricaoInvalida(bruto, f"operadores desconhecidos: {desconhecidas}")
    return RestricaoInvalida(bruto, "'in' nao combina com limites")


# =============================================================================
# AVALIACAO
# =============================================================================


def igual_estrito(a: Any, b: Any) -> bool:
    """
    Igualdade sem coercao.

    bool so e igual a bool; numeros comparam por valor (1 == 1.0);
    texto nunca e igual a numero.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _eh_numero(a) and _eh_numero(b):
        return a == b
    if type(a) is not type(b):
        return False
    return a == b


def _comparaveis(valor: Any, limite: Any) -> bool:
    if _eh_numero(limite):
        return _eh_numero(valor)
    return isinstance(valor, str) and isinstance(limite, str)


def _satisfaz_intervalo(restricao: Intervalo, valor: Any) -> bool:
    for nome, limite in restricao.limites().items():
        if not _comparaveis(valor, limite):
            return False
        if nome == "lt" and not valor < limite:
            return False
        if nome == "lte" and not valor <= limite:
            return False
        if nome == "gt" and not valor > limite:
            return False
        if nome == "gte" and not valor >= limite:
            return False
    return True


def satisfaz(restricao: Restricao, registro: Mapping, campo: str) -> bool:
    """Aplica uma restricao ao campo do registro. Campo ausente nunca satisfaz."""
    if isinstance(restricao, RestricaoInvalida):
        return False
    if campo not in registro:
        return False

    valor = registro[campo]
    if isinstance(restricao, Igualdade):
        return igual_estrito(valor, restricao.valor)
    if isinstance(restricao, Pertinencia):
        return any(igual_estrito(valor, v) for v in restricao.valores)
    if isinstance(restricao, Intervalo):
        return _satisfaz_intervalo(restricao, valor)
    return False


def _avaliar(criterios: Criterios, registro: Mapping) -> bool:
    for campo, restricao in criterios.campos:
        if not satisfaz(restricao, registro, campo):
            return False

    if criterios.ou is None:
        return True
    if isinstance(criterios.ou, RestricaoInvalida):
        return False
    return any(_avaliar(alternativa, registro) for alternativa in criterios.ou.alternativas)


def corresponde(criterios: Union[Criterios, Mapping, None], registro: Mapping) -> bool:
    """
    Verifica se o registro atende os criterios.

    Args:
        criterios: Criterios convertidos ou o JSON bruto
        registro: Dados do cliente (coluna -> valor)

    Returns:
        True se todas as restricoes forem satisfeitas. Nunca levanta
        excecao: restricao invalida ou comparacao impossivel = False.
    """
    if not isinstance(criterios, Criterios):
        criterios = Criterios.from_dict(criterios)
    if criterios.vazio:
        return True
    try:
        return _avaliar(criterios, registro)
    except Exception as e:
        # Comparacoes exoticas (__lt__ customizado, etc) tambem falham fechado
        logger.warning(f"Erro ao avaliar criterios, registro ignorado: {e}")
        return False
