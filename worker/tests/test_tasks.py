"""Tests for the Celery task wrappers."""

import importlib

from gangsheet_worker.tasks import generate_gangsheet, health_check

generate_module = importlib.import_module("gangsheet_worker.tasks.generate_gangsheet")


class StubOrchestrator:
    def __init__(self):
        self.calls = []

    async def run(self, gangsheet_id):
        self.calls.append(gangsheet_id)
        return "completed" if gangsheet_id == 1 else None


def test_generate_gangsheet_reports_final_status(monkeypatch):
    orchestrator = StubOrchestrator()
    monkeypatch.setattr(generate_module, "build_orchestrator", lambda: orchestrator)

    assert generate_gangsheet.run(1) == {"gangsheet_id": 1, "status": "completed"}
    assert generate_gangsheet.run(2) == {"gangsheet_id": 2, "status": "skipped"}
    assert orchestrator.calls == [1, 2]


def test_task_names_match_api_dispatch():
    assert generate_gangsheet.name == "gangsheet_worker.tasks.generate_gangsheet.generate_gangsheet"
    assert health_check.run() == {"status": "ok", "worker": "ready"}
