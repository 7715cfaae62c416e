"""
Testes da agregacao por periodo.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import ValidationError
from app.services.analytics.tendencia import Granularidade, agrupar_por_atributo, agrupar_por_periodo
from app.services.predicoes.types import ClassePredita, Predicao


def pred(timestamp, classe="YES", cliente_id="c1"):
    return {"timestamp": timestamp, "classe_predita": classe, "cliente_id": cliente_id}


MARCO = [
    pred("2024-03-01T10:00:00Z", "YES"),
    pred("2024-03-15T23:00:00Z", "NO"),
]


class TestAgruparPorPeriodo:

    def test_por_dia(self):
        assert agrupar_por_periodo(MARCO, "day") == [
            {"bucket": "2024-03-01", "positive": 1, "negative": 0},
            {"bucket": "2024-03-15", "positive": 0, "negative": 1},
        ]

    def test_por_semana_iso(self):
        assert agrupar_por_periodo(MARCO, "week") == [
            {"bucket": "2024-W09", "positive": 1, "negative": 0},
            {"bucket": "2024-W11", "positive": 0, "negative": 1},
        ]

    def test_por_mes(self):
        assert agrupar_por_periodo(MARCO, "month") == [
            {"bucket": "2024-03", "positive": 1, "negative": 1},
        ]

    def test_semana_usa_ano_iso(self):
        linhas = agrupar_por_periodo(
            [pred("2024-12-30T08:00:00Z"), pred("2021-01-01T08:00:00Z")], Granularidade.SEMANA
        )
        assert [linha["bucket"] for linha in linhas] == ["2020-W53", "2025-W01"]

    def test_fuso_convertido_para_utc(self):
        # 22h em Sao Paulo ja e dia seguinte em UTC
        linhas = agrupar_por_periodo([pred("2024-03-01T22:00:00-03:00")], "day")
        assert linhas[0]["bucket"] == "2024-03-02"

    def test_naive_tratado_como_utc(self):
        linhas = agrupar_por_periodo([pred(datetime(2024, 3, 31, 23, 30))], "month")
        assert linhas == [{"bucket": "2024-03", "positive": 1, "negative": 0}]

    def test_aceita_predicao(self):
        predicao = Predicao(
            "p1", "c1", ClassePredita.NAO, 0.1, 0.9, "single_predict",
            datetime(2024, 3, 1, tzinfo=timezone.utc),
        )
        assert agrupar_por_periodo([predicao], "day") == [
            {"bucket": "2024-03-01", "positive": 0, "negative": 1}
        ]

    def test_periodos_vazios_nao_aparecem_e_ordem_cronologica(self):
        inicio = datetime(2024, 1, 1, tzinfo=timezone.utc)
        predicoes = [pred(inicio + timedelta(days=d)) for d in (40, 0, 100)]

        buckets = [linha["bucket"] for linha in agrupar_por_periodo(predicoes, "month")]

        assert buckets == ["2024-01", "2024-02", "2024-04"]

    def test_soma_dos_buckets_igual_ao_total(self):
        inicio = datetime(2024, 1, 1, tzinfo=timezone.utc)
        predicoes = [pred(inicio + timedelta(hours=7 * i), "YES" if i % 3 else "NO") for i in range(50)]

        for granularidade in Granularidade:
            linhas = agrupar_por_periodo(predicoes, granularidade)
            assert sum(l["positive"] + l["negative"] for l in linhas) == 50

    def test_sem_predicoes(self):
        assert agrupar_por_periodo([], "week") == []

    def test_granularidade_case_insensitive(self):
        assert agrupar_por_periodo(MARCO, " Month ")[0]["bucket"] == "2024-03"

    @pytest.mark.parametrize("granularidade", ["year", "", None, "dia"])
    def test_granularidade_invalida(self, granularidade):
        with pytest.raises(ValidationError):
            agrupar_por_periodo(MARCO, granularidade)


class TestAgruparPorAtributo:

    def test_ordena_por_total(self):
        sim = Predicao("p1", "c1", ClassePredita.SIM, 0.8, 0.2, "x")
        nao = Predicao("p2", "c2", ClassePredita.NAO, 0.2, 0.8, "x")

        linhas = agrupar_por_atributo([
            ("admin.", sim),
            ("student", nao),
            ("student", sim),
            (None, nao),
        ])

        assert linhas[0] == {"valor": "student", "positive": 1, "negative": 1, "total": 2}
        assert {l["valor"] for l in linhas[1:]} == {"admin.", "unknown"}
