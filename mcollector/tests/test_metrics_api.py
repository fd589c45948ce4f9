"""HTTP-level tests for the metric endpoints."""

import pytest
from fastapi.testclient import TestClient

from mcollector.main import create_app


class TestUpdateAndValue:
    """Path-parameter update and read endpoints."""

    def test_gauge_round_trip(self, client):
        response = client.post("/update/gauge/x/123.45")
        assert response.status_code == 200

        response = client.get("/value/gauge/x")
        assert response.status_code == 200
        assert response.text == "123.45"
        assert response.headers["content-type"].startswith("text/plain")

    def test_gauge_update_overwrites(self, client):
        client.post("/update/gauge/load/1.5")
        client.post("/update/gauge/load/0.25")

        assert client.get("/value/gauge/load").text == "0.25"

    def test_counter_update_accumulates(self, client):
        client.post("/update/counter/hits/5")
        client.post("/update/counter/hits/7")

        response = client.get("/value/counter/hits")
        assert response.status_code == 200
        assert response.text == "12"

    @pytest.mark.parametrize(
        "raw, rendered",
        [("1", "1"), ("1.0", "1"), ("-0.5", "-0.5"), ("1e3", "1000"), ("0.0000015", "0.0000015")],
    )
    def test_gauge_rendered_as_plain_decimal(self, client, raw, rendered):
        client.post(f"/update/gauge/g/{raw}")
        assert client.get("/value/gauge/g").text == rendered

    def test_update_updates_the_store(self, client, storage):
        client.post("/update/counter/hits/3")
        assert storage.select_counter("hits") == 3

    @pytest.mark.parametrize(
        "path",
        [
            "/update/histogram/x/1",
            "/update/Gauge/x/1",
            "/update/counter/x/abc",
            "/update/counter/x/1.5",
            "/update/counter/x/1_000",
            "/update/counter/x/9223372036854775808",
            "/update/gauge/x/abc",
            "/update/gauge/x/NaN",
            "/update/gauge/x/inf",
            "/update/gauge/x/1e400",
            "/update/gauge//1",
            "/update/gauge/x",
            "/update/gauge/x/1/extra",
        ],
    )
    def test_invalid_update_is_bad_request(self, client, storage, path):
        response = client.post(path)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E1001"
        assert storage.snapshot().gauges == {}
        assert storage.snapshot().counters == {}

    def test_invalid_type_on_read_is_bad_request(self, client):
        response = client.get("/value/histogram/x")
        assert response.status_code == 400

    @pytest.mark.parametrize("metric_type", ["gauge", "counter"])
    def test_unknown_metric_is_not_found(self, client, metric_type):
        response = client.get(f"/value/{metric_type}/never-set")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E1002"

    def test_counter_is_not_visible_as_gauge(self, client):
        client.post("/update/counter/hits/1")
        assert client.get("/value/gauge/hits").status_code == 404

    def test_counter_overflow_is_bad_request(self, test_settings, any_storage):
        client = TestClient(create_app(test_settings, storage=any_storage))
        client.post("/update/counter/hits/9223372036854775807")

        response = client.post("/update/counter/hits/1")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E1001"
        assert client.get("/value/counter/hits").text == "9223372036854775807"


class TestStorageFailures:
    """Backend errors surface as 500 without internal detail."""

    @pytest.mark.parametrize(
        "method, path",
        [
            ("post", "/update/gauge/x/1"),
            ("post", "/update/counter/x/1"),
            ("get", "/value/gauge/x"),
            ("get", "/value/counter/x"),
            ("get", "/"),
        ],
    )
    def test_storage_error_is_internal_error(self, failing_client, method, path):
        response = getattr(failing_client, method)(path)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "E5000"
        assert "10.0.0.7" not in response.text

    def test_validation_runs_before_storage(self, failing_client):
        response = failing_client.post("/update/counter/x/abc")
        assert response.status_code == 400


class TestPing:
    """Storage liveness check."""

    def test_ping_ok(self, client):
        response = client.get("/ping")
        assert response.status_code == 200

    def test_ping_failure_hides_cause(self, failing_client):
        response = failing_client.get("/ping")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "E5001"
        assert "connection refused" not in response.text


class TestJsonEndpoints:
    """JSON update, batch and read endpoints."""

    def test_gauge_update_echoes_value(self, client):
        response = client.post("/update/", json={"id": "load", "type": "gauge", "value": 0.5})

        assert response.status_code == 200
        assert response.json() == {"id": "load", "type": "gauge", "value": 0.5}

    def test_counter_update_returns_total(self, client):
        client.post("/update/", json={"id": "hits", "type": "counter", "delta": 4})
        response = client.post("/update/", json={"id": "hits", "type": "counter", "delta": 6})

        assert response.json() == {"id": "hits", "type": "counter", "delta": 10}

    def test_value_lookup(self, client):
        client.post("/update/gauge/load/2.5")
        client.post("/update/counter/hits/3")

        gauge = client.post("/value/", json={"id": "load", "type": "gauge"})
        counter = client.post("/value/", json={"id": "hits", "type": "counter"})

        assert gauge.json() == {"id": "load", "type": "gauge", "value": 2.5}
        assert counter.json() == {"id": "hits", "type": "counter", "delta": 3}

    def test_value_lookup_unknown_metric(self, client):
        response = client.post("/value/", json={"id": "nope", "type": "counter"})
        assert response.status_code == 404

    def test_batch_update(self, client, storage):
        response = client.post(
            "/updates/",
            json=[
                {"id": "load", "type": "gauge", "value": 1.0},
                {"id": "hits", "type": "counter", "delta": 2},
                {"id": "hits", "type": "counter", "delta": 3},
            ],
        )

        assert response.status_code == 200
        assert response.json() == {"updated": 3}
        assert storage.select_gauge("load") == 1.0
        assert storage.select_counter("hits") == 5

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": "hits", "type": "counter"},
            {"id": "load", "type": "gauge"},
            {"id": "", "type": "gauge", "value": 1.0},
            {"id": "x", "type": "histogram", "value": 1.0},
            {"id": "hits", "type": "counter", "delta": 1.5},
            {"id": "hits", "type": "counter", "delta": 2**63},
        ],
    )
    def test_invalid_json_update_is_bad_request(self, client, payload):
        response = client.post("/update/", json=payload)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E1001"

    def test_non_finite_json_gauge_is_rejected(self, client):
        response = client.post(
            "/update/",
            content=b'{"id": "load", "type": "gauge", "value": NaN}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_invalid_batch_applies_nothing(self, client, storage):
        response = client.post(
            "/updates/",
            json=[
                {"id": "load", "type": "gauge", "value": 1.0},
                {"id": "hits", "type": "counter"},
            ],
        )

        assert response.status_code == 400
        assert storage.snapshot().gauges == {}


class TestIndex:
    """HTML listing of stored metrics."""

    def test_lists_metrics(self, client):
        client.post("/update/gauge/load/0.5")
        client.post("/update/counter/hits/3")

        response = client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "<td>load</td><td>0.5</td>" in response.text
        assert "<td>hits</td><td>3</td>" in response.text

    def test_escapes_metric_names(self, client, storage):
        storage.insert_gauge("<script>", 1.0)

        response = client.get("/")

        assert "<script>" not in response.text
        assert "&lt;script&gt;" in response.text
