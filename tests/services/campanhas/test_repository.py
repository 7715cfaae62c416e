"""
Testes do CampanhaRepository com mock do Supabase.
"""
import pytest

from app.core.exceptions import DatabaseError
from app.services.campanhas.repository import CampanhaRepository
from app.services.campanhas.types import CampanhaData, Contadores, StatusCampanha
from tests.conftest import criar_mock_supabase


def linha_campanha(**campos):
    linha = {
        "id": "camp-1",
        "nome": "Celular 30+",
        "criterios": {"contact": "cellular", "age": {"gte": 30}},
        "total_alvos": 10,
        "positivos": 6,
        "negativos": 1,
        "status": "concluida",
        "ultima_execucao_em": "2024-03-01T10:00:00Z",
        "created_at": "2024-02-28T09:00:00+00:00",
        "updated_at": None,
    }
    linha.update(campos)
    return linha


class TestCampanhaData:

    def test_from_db_row(self):
        campanha = CampanhaData.from_db_row(linha_campanha())

        assert campanha.status == StatusCampanha.CONCLUIDA
        assert campanha.criterios["age"] == {"gte": 30}
        assert campanha.taxa_conversao == 0.6
        assert campanha.ultima_execucao_em.tzinfo is not None

    def test_status_desconhecido_vira_rascunho(self):
        assert CampanhaData.from_db_row(linha_campanha(status="xpto")).status == StatusCampanha.RASCUNHO

    def test_contadores_nulos_viram_zero(self):
        campanha = CampanhaData.from_db_row(linha_campanha(total_alvos=None, positivos=None, negativos=None))
        assert (campanha.total_alvos, campanha.positivos, campanha.negativos) == (0, 0, 0)
        assert campanha.taxa_conversao == 0.0

    def test_contadores_inconsistentes_sao_rejeitados(self):
        with pytest.raises(ValueError):
            Contadores(total_alvos=2, positivos=2, negativos=1)


class TestCampanhaRepository:

    @pytest.mark.asyncio
    async def test_criar_com_contadores_zerados(self):
        db = criar_mock_supabase([linha_campanha(total_alvos=0, positivos=0, negativos=0, status="rascunho")])
        repo = CampanhaRepository(db)

        await repo.criar({"nome": "Celular 30+", "criterios": {"contact": "cellular"}})

        payload = db.insert.call_args[0][0]
        assert payload["status"] == "rascunho"
        assert (payload["total_alvos"], payload["positivos"], payload["negativos"]) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_atualizar_ignora_contadores(self):
        db = criar_mock_supabase([linha_campanha()])
        repo = CampanhaRepository(db)

        await repo.atualizar("camp-1", {"nome": "Novo", "positivos": 99})

        payload = db.update.call_args[0][0]
        assert payload["nome"] == "Novo"
        assert "positivos" not in payload
        assert "updated_at" in payload

    @pytest.mark.asyncio
    async def test_atualizar_inexistente(self):
        repo = CampanhaRepository(criar_mock_supabase([]))
        assert await repo.atualizar("x", {"nome": "Novo"}) is None

    @pytest.mark.asyncio
    async def test_contadores_em_um_unico_update(self):
        db = criar_mock_supabase([linha_campanha()])
        repo = CampanhaRepository(db)

        await repo.atualizar_contadores("camp-1", Contadores(10, 7, 0), status=StatusCampanha.CONCLUIDA)

        assert db.update.call_count == 1
        payload = db.update.call_args[0][0]
        assert payload["total_alvos"] == 10
        assert payload["positivos"] == 7
        assert payload["negativos"] == 0
        assert payload["status"] == "concluida"

    @pytest.mark.asyncio
    async def test_status_executando_marca_ultima_execucao(self):
        db = criar_mock_supabase([linha_campanha()])
        repo = CampanhaRepository(db)

        await repo.atualizar_status("camp-1", StatusCampanha.EXECUTANDO)

        payload = db.update.call_args[0][0]
        assert payload["status"] == "executando"
        assert payload["ultima_execucao_em"] == payload["updated_at"]

    @pytest.mark.asyncio
    async def test_listar_com_busca_e_status(self):
        db = criar_mock_supabase([linha_campanha()])
        repo = CampanhaRepository(db)

        campanhas = await repo.listar(limit=10, offset=20, busca="celular", status="concluida")

        assert [c.id for c in campanhas] == ["camp-1"]
        db.ilike.assert_called_once_with("nome", "%celular%")
        db.eq.assert_called_once_with("status", "concluida")
        db.range.assert_called_once_with(20, 29)

    @pytest.mark.asyncio
    async def test_buscar_inexistente(self):
        repo = CampanhaRepository(criar_mock_supabase([]))
        assert await repo.buscar_por_id("x") is None

    @pytest.mark.asyncio
    async def test_falha_de_banco(self):
        db = criar_mock_supabase()
        db.execute.side_effect = Exception("boom")
        repo = CampanhaRepository(db)

        with pytest.raises(DatabaseError):
            await repo.atualizar_contadores("camp-1", Contadores(1, 1, 0))
