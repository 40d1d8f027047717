import httpx
import pytest

from medlens.errors import ExternalServiceError
from medlens.pharma import OPENFDA_BASE_URL, OpenFDAClient

ADVIL_LABEL = {
    "results": [
        {
            "set_id": "abc-123",
            "openfda": {
                "brand_name": ["ADVIL"],
                "generic_name": ["IBUPROFEN"],
                "route": ["ORAL"],
                "manufacturer_name": ["Haleon"],
                "pharm_class_epc": ["Nonsteroidal Anti-inflammatory Drug [EPC]"],
            },
            "indications_and_usage": [
                "INDICATIONS AND USAGE Temporarily relieves minor aches and pains. Also reduces fever."
            ],
            "adverse_reactions": ["ADVERSE REACTIONS Stomach bleeding may occur."],
        }
    ]
}


def _client(handler, api_key=None):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=OPENFDA_BASE_URL)
    return OpenFDAClient(client=http, api_key=api_key)


async def test_lookup_maps_label_to_drug_entity():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=ADVIL_LABEL)

    drug = await _client(handler).lookup("advil")

    assert seen[0].url.path == "/drug/label.json"
    assert seen[0].url.params["search"] == 'openfda.brand_name:"advil" openfda.generic_name:"advil"'
    assert seen[0].url.params["limit"] == "1"
    assert drug.id == "advil"
    assert drug.name == "Advil"
    assert drug.generic_name == "Ibuprofen"
    assert drug.synonyms == ["Ibuprofen"]
    assert drug.dosage_form == ["oral"]
    assert drug.indications == ["Temporarily relieves minor aches and pains."]
    assert drug.side_effects == ["Stomach bleeding may occur."]
    assert drug.category == "Nonsteroidal Anti-inflammatory Drug [EPC]"
    assert drug.sources == ["openFDA"]


async def test_api_key_is_sent_when_configured():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=ADVIL_LABEL)

    await _client(handler, api_key="secret").lookup("advil")
    assert seen[0].url.params["api_key"] == "secret"


async def test_not_found_returns_none():
    client = _client(lambda request: httpx.Response(404, json={"error": {"code": "NOT_FOUND"}}))
    assert await client.lookup("xyzzy") is None
    assert await client.lookup("   ") is None


async def test_server_error_raises():
    client = _client(lambda request: httpx.Response(500))
    with pytest.raises(ExternalServiceError):
        await client.lookup("advil")


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(ExternalServiceError):
        await _client(handler).lookup("advil")


async def test_malformed_payload_raises():
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(ExternalServiceError):
        await client.lookup("advil")


@pytest.mark.parametrize("payload", [[1], "label", {"results": {"openfda": {}}}, {"results": ["ADVIL"]}])
async def test_unexpected_json_shape_raises(payload):
    client = _client(lambda request: httpx.Response(200, json=payload))
    with pytest.raises(ExternalServiceError, match="malformed JSON payload"):
        await client.lookup("advil")


async def test_empty_results_return_none():
    client = _client(lambda request: httpx.Response(200, json={"results": []}))
    assert await client.lookup("advil") is None
