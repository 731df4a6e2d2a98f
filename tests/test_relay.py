"""
Test Suite: Relay Client
========================
JSON-RPC framing and HTTP failure classification, over httpx.MockTransport.
"""

import json

import httpx
import pytest

from pump_bundler.bundle.relay import STATUS_LANDED, STATUS_PENDING, RelayClient
from pump_bundler.core.exceptions import RelayError, TransientRelayError

BASE_URL = "https://block-engine.test/api/v1"


def make_relay(handler, **kwargs) -> RelayClient:
    return RelayClient(BASE_URL, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), **kwargs)


def rpc_result(request, result):
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


class TestSendBundle:
    async def test_payload_and_bundle_id(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("x-jito-auth")
            return rpc_result(request, "abc123")

        relay = make_relay(handler, uuid="secret")
        assert await relay.send_bundle(["dHgx", "dHgy"]) == "abc123"
        assert seen["url"] == f"{BASE_URL}/bundles"
        assert seen["body"]["method"] == "sendBundle"
        assert seen["body"]["params"] == [["dHgx", "dHgy"], {"encoding": "base64"}]
        assert seen["auth"] == "secret"

    async def test_empty_bundle(self):
        relay = make_relay(lambda request: rpc_result(request, "x"))
        with pytest.raises(ValueError):
            await relay.send_bundle([])

    @pytest.mark.parametrize("status", [429, 500, 503])
    async def test_overload_is_transient(self, status):
        relay = make_relay(lambda request: httpx.Response(status, text="busy"))
        with pytest.raises(TransientRelayError):
            await relay.send_bundle(["dHgx"])

    async def test_timeout_is_transient(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TransientRelayError):
            await make_relay(handler).send_bundle(["dHgx"])

    async def test_rpc_error_rate_limit_is_transient(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1,
                                             "error": {"code": -32097, "message": "Rate limit exceeded"}})

        with pytest.raises(TransientRelayError):
            await make_relay(handler).send_bundle(["dHgx"])

    async def test_rpc_error_simulation_is_permanent(self):
        def handler(request):
            return httpx.Response(400, json={"jsonrpc": "2.0", "id": 1,
                                             "error": {"code": -32602, "message": "bundle simulation failure"}})

        with pytest.raises(RelayError) as exc:
            await make_relay(handler).send_bundle(["dHgx"])
        assert not isinstance(exc.value, TransientRelayError)

    async def test_non_json_body(self):
        relay = make_relay(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RelayError):
            await relay.send_bundle(["dHgx"])


class TestStatuses:
    async def test_inflight(self):
        def handler(request):
            return rpc_result(request, {"context": {"slot": 1}, "value": [
                {"bundle_id": "a", "status": STATUS_LANDED, "landed_slot": 99},
                {"bundle_id": "b", "status": STATUS_PENDING, "landed_slot": None},
            ]})

        statuses = await make_relay(handler).get_inflight_bundle_statuses(["a", "b"])
        assert [(s.bundle_id, s.status, s.landed_slot) for s in statuses] == [
            ("a", STATUS_LANDED, 99), ("b", STATUS_PENDING, None)
        ]

    async def test_bundle_statuses(self):
        def handler(request):
            return rpc_result(request, {"context": {"slot": 1}, "value": [{
                "bundle_id": "a", "slot": 77, "transactions": ["s1", "s2"],
                "confirmation_status": "confirmed", "err": {"Ok": None},
            }]})

        records = await make_relay(handler).get_bundle_statuses(["a"])
        assert records[0].slot == 77
        assert records[0].transaction_ids == ["s1", "s2"]
        assert records[0].err is None

    async def test_tip_accounts(self):
        relay = make_relay(lambda request: rpc_result(request, ["96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5"]))
        assert await relay.get_tip_accounts() == ["96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5"]

    async def test_no_tip_accounts(self):
        relay = make_relay(lambda request: rpc_result(request, []))
        with pytest.raises(RelayError):
            await relay.get_tip_accounts()
