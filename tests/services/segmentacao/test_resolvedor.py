"""
Testes da resolucao de publico-alvo.
"""
import pytest

from app.core.exceptions import DatabaseError
from app.repositories.base import FiltroNativo
from app.services.segmentacao.criterios import Criterios
from app.services.segmentacao.resolvedor import (
    ResolvedorAlvos,
    filtrar_clientes,
    filtros_nativos,
    resolver_alvos,
)
from tests.fakes import FakeClienteRepo, criar_cliente


@pytest.fixture
def clientes():
    return [
        criar_cliente("c1", age=25, contact="cellular", job="student"),
        criar_cliente("c2", age=31, contact="cellular", job="admin."),
        criar_cliente("c3", age=45, contact="telephone", job="admin."),
        criar_cliente("c4", age=52, contact="cellular", job="retired"),
    ]


class TestResolverAlvos:

    def test_colecao_vazia(self):
        assert resolver_alvos({"age": {"gte": 30}}, []) == set()

    def test_criterios_vazios_retornam_todos(self, clientes):
        assert resolver_alvos({}, clientes) == {"c1", "c2", "c3", "c4"}

    def test_resolve_por_criterios(self, clientes):
        alvos = resolver_alvos({"contact": "cellular", "age": {"gte": 30}}, clientes)
        assert alvos == {"c2", "c4"}

    def test_aceita_dicts(self):
        registros = [{"id": 1, "age": 40}, {"id": 2, "age": 20}]
        assert resolver_alvos({"age": {"gt": 30}}, registros) == {"1"}

    def test_filtrar_preserva_ordem(self, clientes):
        filtrados = filtrar_clientes({"job": {"in": ["admin.", "retired"]}}, clientes)
        assert [c.id for c in filtrados] == ["c2", "c3", "c4"]


class TestFiltrosNativos:
    """Traducao das restricoes de topo em filtros do banco."""

    def test_igualdade_intervalo_e_pertinencia(self):
        criterios = Criterios.from_dict({
            "contact": "cellular",
            "age": {"gte": 30, "lt": 60},
            "job": {"in": ["admin.", "student"]},
        })
        filtros = filtros_nativos(criterios)
        assert FiltroNativo("eq", "contact", "cellular") in filtros
        assert FiltroNativo("gte", "age", 30) in filtros
        assert FiltroNativo("lt", "age", 60) in filtros
        assert FiltroNativo("in", "job", ("admin.", "student")) in filtros

    def test_ignora_ou_e_tipos_que_nao_batem_com_a_coluna(self):
        criterios = Criterios.from_dict({
            "age": "30",
            "job": {"in": ["admin.", 3]},
            "month": {"gte": "a"},
            "coluna_desconhecida": 1,
            "housing": True,
            "OR": [{"loan": "yes"}],
        })
        assert filtros_nativos(criterios) == []

    def test_ignora_restricoes_invalidas(self):
        assert filtros_nativos(Criterios.from_dict({"age": {"between": [1, 2]}})) == []

    def test_coluna_inteira_so_recebe_inteiro(self):
        filtros = filtros_nativos(Criterios.from_dict({
            "age": 30.5,
            "campaign": {"in": [1, 2.5]},
            "duration": 120.0,
        }))
        assert filtros == [FiltroNativo("eq", "duration", 120)]

    def test_limite_fracionario_arredonda_para_dentro_do_inteiro(self):
        filtros = filtros_nativos(Criterios.from_dict({
            "age": {"gt": 30.5, "lte": 59.9},
            "pdays": {"lt": 3.2},
        }))
        assert FiltroNativo("gte", "age", 31) in filtros
        assert FiltroNativo("lte", "age", 59) in filtros
        assert FiltroNativo("lte", "pdays", 3) in filtros

    def test_inteiro_fora_da_faixa_nao_vai_para_o_banco(self):
        assert filtros_nativos(Criterios.from_dict({"age": 10 ** 12})) == []

    def test_id_so_vai_para_o_banco_se_for_uuid(self):
        valido = "8f14e45f-ceea-467f-a0e6-2d6a4b3c1d2e"
        assert filtros_nativos(Criterios.from_dict({"id": "abc"})) == []
        assert filtros_nativos(Criterios.from_dict({"id": {"in": [valido, "abc"]}})) == []
        assert filtros_nativos(Criterios.from_dict({"id": valido})) == [FiltroNativo("eq", "id", valido)]

    def test_coluna_double_aceita_fracionario(self):
        filtros = filtros_nativos(Criterios.from_dict({"euribor3m": {"gte": 1.25}}))
        assert filtros == [FiltroNativo("gte", "euribor3m", 1.25)]


class TestResolvedorAlvos:

    @pytest.mark.asyncio
    async def test_empurra_filtros_e_reavalia_em_memoria(self, clientes):
        repo = FakeClienteRepo(clientes)  # devolve tudo, como um banco sem filtro
        resolvedor = ResolvedorAlvos(cliente_repo=repo)

        alvos = await resolvedor.resolver_clientes({"contact": "cellular", "age": {"gte": 30}})

        assert [c.id for c in alvos] == ["c2", "c4"]
        assert FiltroNativo("eq", "contact", "cellular") in repo.filtros_recebidos[0]

    @pytest.mark.asyncio
    async def test_resultado_igual_ao_avaliador(self, clientes):
        resolvedor = ResolvedorAlvos(cliente_repo=FakeClienteRepo(clientes))
        criterios = {"OR": [{"job": "student"}, {"age": {"gt": 50}}]}

        assert await resolvedor.resolver(criterios) == resolver_alvos(criterios, clientes)

    @pytest.mark.asyncio
    async def test_restricao_invalida_no_topo_nao_consulta_banco(self, clientes):
        repo = FakeClienteRepo(clientes)
        resolvedor = ResolvedorAlvos(cliente_repo=repo)

        assert await resolvedor.resolver({"age": {"between": [1, 99]}}) == set()
        assert repo.filtros_recebidos == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("criterios", [{"age": 30.5}, {"id": "abc"}, {"age": {"in": [30.5]}}])
    async def test_valor_que_a_coluna_rejeitaria_resolve_vazio(self, clientes, criterios):
        class RepoTipado(FakeClienteRepo):
            # Como o PostgREST: valor incompativel com a coluna e erro 22P02
            async def listar_todos(self, filtros=()):
                for f in filtros:
                    valores = f.valor if f.operador == "in" else (f.valor,)
                    if f.campo in ("age", "duration", "campaign", "pdays", "previous"):
                        if any(not isinstance(v, int) for v in valores):
                            raise DatabaseError("Erro no Supabase: clientes.listar_todos")
                    if f.campo == "id":
                        raise DatabaseError("Erro no Supabase: clientes.listar_todos")
                return await super().listar_todos(filtros)

        resolvedor = ResolvedorAlvos(cliente_repo=RepoTipado(clientes))

        assert await resolvedor.resolver(criterios) == set()

    @pytest.mark.asyncio
    async def test_erro_de_banco_propaga(self):
        class RepoQuebrado(FakeClienteRepo):
            async def listar_todos(self, filtros=()):
                raise DatabaseError("Supabase indisponivel: clientes.listar_todos")

        resolvedor = ResolvedorAlvos(cliente_repo=RepoQuebrado())
        with pytest.raises(DatabaseError):
            await resolvedor.resolver({})
