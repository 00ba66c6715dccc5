"""Health check tests."""


def test_health_endpoint(client):
    """Health reports database and Redis status even when they are down."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("ok", "degraded")
    assert "db" in data
    assert "redis" in data


def test_healthz_endpoint(client):
    response = client.get("/v1/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_worker_health(client, monkeypatch):
    from celery.exceptions import TimeoutError as CeleryTimeoutError

    from gangsheet_api.api.v1.endpoints import health

    class Reply:
        def __init__(self, value):
            self.value = value

        def get(self, timeout=None):
            if isinstance(self.value, Exception):
                raise self.value
            return self.value

    sent = []

    def answer(name, *args, **kwargs):
        sent.append(name)
        return Reply({"status": "ok", "worker": "ready"})

    monkeypatch.setattr(health.celery_app, "send_task", answer)
    response = client.get("/v1/healthz/worker")
    assert response.status_code == 200
    assert response.json()["worker"] == {"status": "ok", "worker": "ready"}
    assert sent == ["gangsheet_worker.tasks.health_check"]

    monkeypatch.setattr(health.celery_app, "send_task", lambda name, **kw: Reply(CeleryTimeoutError("no reply")))
    assert client.get("/v1/healthz/worker").status_code == 503
