"""
Testes do cliente do servico de ML usando httpx.MockTransport.
"""
import json

import httpx
import pytest

from app.core.exceptions import OraculoError
from app.services.circuit_breaker import CircuitBreaker, CircuitState, falha_do_oraculo
from app.services.ml.oraculo import ClienteOraculo, interpretar_resposta
from app.services.predicoes.types import ClassePredita

BASE_URL = "http://ml.test"


def resposta_ml(predicted_class="YES", probability_yes=0.8, probability_no=0.2, success=True):
    data = {"probability_yes": probability_yes, "probability_no": probability_no}
    if predicted_class is not None:
        data["predicted_class"] = predicted_class
    return {"success": success, "data": data}


def criar_oraculo(handler, tentativas=1, circuit=None) -> ClienteOraculo:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ClienteOraculo(
        base_url=BASE_URL,
        http_client=client,
        tentativas=tentativas,
        tolerancia=0.05,
        circuit=circuit or CircuitBreaker(nome="ml-teste", falhas_para_abrir=3),
    )


class TestInterpretarResposta:

    def test_resposta_valida(self):
        resposta = interpretar_resposta(resposta_ml("NO", 0.3, 0.7))
        assert resposta.classe_predita == ClassePredita.NAO
        assert resposta.probabilidade_sim == 0.3
        assert resposta.probabilidade_nao == 0.7
        assert not resposta.classe_derivada

    def test_classe_ausente_e_derivada(self):
        resposta = interpretar_resposta(resposta_ml(None, 0.6, 0.4))
        assert resposta.classe_predita == ClassePredita.SIM
        assert resposta.classe_derivada

    def test_empate_fica_com_sim(self):
        resposta = interpretar_resposta(resposta_ml(None, 0.5, 0.5))
        assert resposta.classe_predita == ClassePredita.SIM

    def test_classe_em_minusculo(self):
        assert interpretar_resposta(resposta_ml("no", 0.1, 0.9)).classe_predita == ClassePredita.NAO

    def test_soma_fora_da_tolerancia_e_renormalizada(self):
        resposta = interpretar_resposta(resposta_ml("YES", 0.6, 0.6))
        assert resposta.probabilidade_sim == 0.5
        assert resposta.probabilidade_nao == 0.5

    def test_soma_dentro_da_tolerancia_fica_como_veio(self):
        resposta = interpretar_resposta(resposta_ml("YES", 0.52, 0.5))
        assert resposta.probabilidade_sim == 0.52
        assert resposta.probabilidade_nao == 0.5

    @pytest.mark.parametrize("corpo", [
        None,
        [],
        {"success": False, "data": {"probability_yes": 0.5, "probability_no": 0.5}},
        {"success": True},
        {"success": True, "data": "x"},
        resposta_ml("YES", None, 0.2),
        resposta_ml("YES", "0.8", 0.2),
        resposta_ml("YES", True, 0.2),
        resposta_ml("YES", 1.4, 0.2),
        resposta_ml("YES", 0.0, 0.0),
        resposta_ml("MAYBE", 0.8, 0.2),
    ])
    def test_corpo_malformado(self, corpo):
        with pytest.raises(OraculoError):
            interpretar_resposta(corpo)


class TestClienteOraculo:

    @pytest.mark.asyncio
    async def test_prever_envia_payload(self):
        recebido = {}

        def handler(request: httpx.Request) -> httpx.Response:
            recebido["url"] = str(request.url)
            recebido["corpo"] = json.loads(request.content)
            return httpx.Response(200, json=resposta_ml("YES", 0.9, 0.1))

        oraculo = criar_oraculo(handler)
        resposta = await oraculo.prever({"personal_info": {"age": 40}})

        assert recebido["url"] == f"{BASE_URL}/api/predict"
        assert recebido["corpo"] == {"personal_info": {"age": 40}}
        assert resposta.classe_predita == ClassePredita.SIM
        assert resposta.probabilidade_sim == 0.9

    @pytest.mark.asyncio
    async def test_http_500_vira_oraculo_error(self):
        oraculo = criar_oraculo(lambda request: httpx.Response(500, json={"error": "boom"}))

        with pytest.raises(OraculoError) as exc:
            await oraculo.prever({})

        assert exc.value.details["status_code"] == 500
        assert exc.value.service == "ml"

    @pytest.mark.asyncio
    async def test_corpo_nao_json(self):
        oraculo = criar_oraculo(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(OraculoError):
            await oraculo.prever({})

    @pytest.mark.asyncio
    async def test_retenta_erro_de_conexao(self):
        chamadas = []

        def handler(request):
            chamadas.append(request)
            if len(chamadas) == 1:
                raise httpx.ConnectError("conexao recusada", request=request)
            return httpx.Response(200, json=resposta_ml())

        oraculo = criar_oraculo(handler, tentativas=2)
        resposta = await oraculo.prever({})

        assert len(chamadas) == 2
        assert resposta.classe_predita == ClassePredita.SIM

    @pytest.mark.asyncio
    async def test_timeout_esgota_tentativas(self):
        chamadas = []

        def handler(request):
            chamadas.append(request)
            raise httpx.ReadTimeout("timeout", request=request)

        oraculo = criar_oraculo(handler, tentativas=1)

        with pytest.raises(OraculoError):
            await oraculo.prever({})
        assert len(chamadas) == 1

    @pytest.mark.asyncio
    async def test_nao_retenta_http_500(self):
        chamadas = []

        def handler(request):
            chamadas.append(request)
            return httpx.Response(503)

        oraculo = criar_oraculo(handler, tentativas=3)

        with pytest.raises(OraculoError):
            await oraculo.prever({})
        assert len(chamadas) == 1

    @pytest.mark.asyncio
    async def test_circuit_aberto_vira_oraculo_error(self):
        chamadas = []

        def handler(request):
            chamadas.append(request)
            return httpx.Response(500)

        circuit = CircuitBreaker(nome="ml-teste", falhas_para_abrir=2, tempo_reset_segundos=60)
        oraculo = criar_oraculo(handler, circuit=circuit)

        for _ in range(2):
            with pytest.raises(OraculoError):
                await oraculo.prever({})
        assert circuit.estado == CircuitState.OPEN

        with pytest.raises(OraculoError):
            await oraculo.prever({})
        assert len(chamadas) == 2

    @pytest.mark.asyncio
    async def test_corpo_fora_do_contrato_nao_abre_circuit(self):
        def handler(request):
            return httpx.Response(200, json={"success": True, "data": {"predicted_class": "YES"}})

        circuit = CircuitBreaker(nome="ml-teste", falhas_para_abrir=2, conta_como_falha=falha_do_oraculo)
        oraculo = criar_oraculo(handler, circuit=circuit)

        for _ in range(4):
            with pytest.raises(OraculoError):
                await oraculo.prever({})
        assert circuit.estado == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_health(self):
        def handler(request):
            assert request.url.path == "/api/health"
            return httpx.Response(200, json={"status": "ok", "model_loaded": True})

        assert await criar_oraculo(handler).health() == {"status": "ok", "model_loaded": True}

    @pytest.mark.asyncio
    async def test_health_com_servico_fora(self):
        def handler(request):
            raise httpx.ConnectError("fora", request=request)

        assert await criar_oraculo(handler).health() == {"status": "down"}
